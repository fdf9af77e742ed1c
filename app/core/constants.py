"""
Service-wide constants
"""

SERVICE_NAME = "hope-pharmacy-ims"

# Earth's mean radius used by the Haversine distance
EARTH_RADIUS_METERS = 6371000

# Accuracy bands (meters) used when describing a GPS fix
ACCURACY_VERY_HIGH_METERS = 5
ACCURACY_HIGH_METERS = 20
ACCURACY_MEDIUM_METERS = 100

# Branch location radius bounds accepted from administrators
MIN_BRANCH_RADIUS_METERS = 10
MAX_BRANCH_RADIUS_METERS = 5000
