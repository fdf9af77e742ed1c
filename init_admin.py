"""
Create the initial administrator account (INITIAL_ADMIN_EMAIL / INITIAL_ADMIN_PASSWORD)
"""
from app.db.session import SessionLocal
from app.services.user_service import ensure_initial_admin

if __name__ == "__main__":
    db = SessionLocal()
    try:
        admin = ensure_initial_admin(db)
        if admin is None:
            print("Administrator already exists, nothing to do")
        else:
            print(f"Administrator created: {admin.email}")
            print("Password: value of INITIAL_ADMIN_PASSWORD")
    finally:
        db.close()
