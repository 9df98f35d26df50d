# Great-circle distance in miles between two decimal-degree points.

from math import radians, sin, cos, sqrt, atan2

# Earth's radius in miles
EARTH_RADIUS_MILES = 3959

KM_PER_MILE = 1.60934

def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points
    on the Earth (specified in decimal degrees) using the Haversine formula.

    Args:
        lat1: Latitude of point 1.
        lon1: Longitude of point 1.
        lat2: Latitude of point 2.
        lon2: Longitude of point 2.

    Returns:
        Distance between the two points in miles.
    """
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)

    a = sin(dlat / 2)**2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2)**2
    # Rounding can push antipodal points a hair above 1
    a = min(a, 1.0)
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_MILES * c

def miles_to_km(miles: float) -> float:
    return miles * KM_PER_MILE
