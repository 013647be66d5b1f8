"""Airport coordinates for distance estimates and a fallback lookup list."""

# IATA -> (lat, lng)
AIRPORT_COORDINATES: dict[str, tuple[float, float]] = {
    # North America
    "JFK": (40.6413, -73.7781), "EWR": (40.6895, -74.1745), "LGA": (40.7769, -73.8740),
    "BOS": (42.3656, -71.0096), "DCA": (38.8512, -77.0402), "IAD": (38.9531, -77.4565),
    "ATL": (33.6407, -84.4277), "MIA": (25.7959, -80.2870), "ORD": (41.9742, -87.9073),
    "DTW": (42.2162, -83.3554), "DFW": (32.8998, -97.0403), "DEN": (39.8561, -104.6737),
    "LAX": (33.9416, -118.4085), "SFO": (37.6213, -122.3790), "SEA": (47.4502, -122.3088),
    "YYZ": (43.6777, -79.6248), "YUL": (45.4706, -73.7408), "YOW": (45.3225, -75.6692),
    "YVR": (49.1967, -123.1815), "YYC": (51.1215, -114.0076),
    # Europe
    "LHR": (51.4700, -0.4543), "LGW": (51.1537, -0.1821), "CDG": (49.0097, 2.5479),
    "ORY": (48.7262, 2.3652), "AMS": (52.3105, 4.7683), "FRA": (50.0379, 8.5622),
    "MUC": (48.3537, 11.7750), "ZRH": (47.4582, 8.5555), "FCO": (41.8003, 12.2389),
    "MAD": (40.4983, -3.5676), "LIS": (38.7756, -9.1354), "KEF": (63.9850, -22.6056),
    # Middle East / Asia Pacific
    "DXB": (25.2532, 55.3657), "DOH": (25.2731, 51.6081), "AUH": (24.4330, 54.6511),
    "NRT": (35.7720, 140.3929), "HND": (35.5494, 139.7798), "SIN": (1.3644, 103.9915),
    "HKG": (22.3080, 113.9185), "SYD": (-33.9399, 151.1753),
}

FALLBACK_AIRPORTS: list[dict] = [
    {"code": "JFK", "name": "John F. Kennedy International Airport", "city": "New York",
     "country": "United States", "timezone": "America/New_York"},
    {"code": "LAX", "name": "Los Angeles International Airport", "city": "Los Angeles",
     "country": "United States", "timezone": "America/Los_Angeles"},
    {"code": "LHR", "name": "London Heathrow Airport", "city": "London",
     "country": "United Kingdom", "timezone": "Europe/London"},
    {"code": "CDG", "name": "Charles de Gaulle Airport", "city": "Paris",
     "country": "France", "timezone": "Europe/Paris"},
    {"code": "NRT", "name": "Narita International Airport", "city": "Tokyo",
     "country": "Japan", "timezone": "Asia/Tokyo"},
    {"code": "YYZ", "name": "Toronto Pearson International Airport", "city": "Toronto",
     "country": "Canada", "timezone": "America/Toronto"},
]
