"""Curated destination venues — hand-picked last-resort data for fallback.

Keyed by lower-cased destination. Each venue carries coordinates, a price
range, a 1-10 popularity (used as mention frequency) and free-form tags that
also match requested categories.
"""

CURATED_VENUES: dict[str, list[dict]] = {
    "paris": [
        {
            "name": "Louvre Museum",
            "category": "culture",
            "description": "World-famous art museum housing the Mona Lisa and thousands of other masterpieces",
            "coordinates": {"lat": 48.8606, "lng": 2.3376},
            "price_range": {"min": 15, "max": 17, "currency": "EUR"},
            "popularity": 10,
            "tags": ["culture", "art", "history"],
        },
        {
            "name": "Eiffel Tower",
            "category": "attraction",
            "description": "Iconic iron lattice tower and symbol of Paris",
            "coordinates": {"lat": 48.8584, "lng": 2.2945},
            "price_range": {"min": 25, "max": 29, "currency": "EUR"},
            "popularity": 10,
            "tags": ["culture", "landmark", "views"],
        },
        {
            "name": "Le Comptoir du Relais",
            "category": "dining",
            "description": "Traditional French bistro with authentic Parisian atmosphere",
            "coordinates": {"lat": 48.8511, "lng": 2.3398},
            "price_range": {"min": 35, "max": 55, "currency": "EUR"},
            "popularity": 8,
            "tags": ["dining", "french", "bistro"],
        },
    ],
    "barcelona": [
        {
            "name": "Sagrada Familia",
            "category": "culture",
            "description": "Gaudí's masterpiece basilica, a UNESCO World Heritage Site",
            "coordinates": {"lat": 41.4036, "lng": 2.1744},
            "price_range": {"min": 20, "max": 33, "currency": "EUR"},
            "popularity": 10,
            "tags": ["culture", "architecture", "gaudi"],
        },
        {
            "name": "Park Güell",
            "category": "nature",
            "description": "Colorful park designed by Antoni Gaudí with stunning city views",
            "coordinates": {"lat": 41.4145, "lng": 2.1527},
            "price_range": {"min": 7, "max": 10, "currency": "EUR"},
            "popularity": 9,
            "tags": ["nature", "architecture", "gaudi", "views"],
        },
        {
            "name": "Cal Pep",
            "category": "dining",
            "description": "Famous tapas bar serving fresh seafood and traditional Catalan dishes",
            "coordinates": {"lat": 41.3833, "lng": 2.1834},
            "price_range": {"min": 25, "max": 45, "currency": "EUR"},
            "popularity": 8,
            "tags": ["dining", "tapas", "seafood"],
        },
    ],
    "bali": [
        {
            "name": "Tanah Lot Temple",
            "category": "culture",
            "description": "Ancient Hindu temple perched on a rock formation, one of Bali's most iconic landmarks",
            "coordinates": {"lat": -8.6211, "lng": 115.0868},
            "price_range": {"min": 5, "max": 8, "currency": "USD"},
            "popularity": 10,
            "tags": ["culture", "temple", "history", "landmark"],
        },
        {
            "name": "Uluwatu Temple",
            "category": "culture",
            "description": "Clifftop temple with ocean views and traditional Kecak fire dance performances",
            "coordinates": {"lat": -8.8290, "lng": 115.0850},
            "price_range": {"min": 3, "max": 5, "currency": "USD"},
            "popularity": 9,
            "tags": ["culture", "temple", "sunset", "dance"],
        },
        {
            "name": "Tegallalang Rice Terraces",
            "category": "nature",
            "description": "UNESCO World Heritage rice terraces showcasing traditional Balinese agriculture",
            "coordinates": {"lat": -8.4346, "lng": 115.2784},
            "price_range": {"min": 2, "max": 5, "currency": "USD"},
            "popularity": 9,
            "tags": ["nature", "agriculture", "unesco", "photography"],
        },
        {
            "name": "Sacred Monkey Forest Sanctuary",
            "category": "nature",
            "description": "Temple complex in Ubud surrounded by lush forest and home to hundreds of monkeys",
            "coordinates": {"lat": -8.5191, "lng": 115.2619},
            "price_range": {"min": 3, "max": 5, "currency": "USD"},
            "popularity": 8,
            "tags": ["nature", "wildlife", "temple", "forest"],
        },
        {
            "name": "Warung Babi Guling Ibu Oka",
            "category": "dining",
            "description": "Traditional Balinese restaurant serving babi guling (roast pork) in Ubud",
            "coordinates": {"lat": -8.5069, "lng": 115.2624},
            "price_range": {"min": 5, "max": 12, "currency": "USD"},
            "popularity": 9,
            "tags": ["dining", "traditional", "local"],
        },
        {
            "name": "Locavore Restaurant",
            "category": "dining",
            "description": "Fine dining restaurant featuring modern Indonesian cuisine with local ingredients",
            "coordinates": {"lat": -8.5081, "lng": 115.2625},
            "price_range": {"min": 80, "max": 150, "currency": "USD"},
            "popularity": 8,
            "tags": ["dining", "fine-dining", "modern", "indonesian"],
        },
    ],
    "tokyo": [
        {
            "name": "Tokyo National Museum",
            "category": "culture",
            "description": "Japan's oldest and largest museum, with the largest collection of Japanese cultural artifacts",
            "coordinates": {"lat": 35.7188, "lng": 139.7766},
            "price_range": {"min": 8, "max": 12, "currency": "USD"},
            "popularity": 10,
            "tags": ["culture", "museum", "history", "art"],
        },
        {
            "name": "Senso-ji Temple",
            "category": "culture",
            "description": "Tokyo's oldest Buddhist temple, located in the historic Asakusa district",
            "coordinates": {"lat": 35.7148, "lng": 139.7967},
            "price_range": {"min": 0, "max": 5, "currency": "USD"},
            "popularity": 10,
            "tags": ["culture", "temple", "history", "buddhist"],
        },
        {
            "name": "Nezu Shrine",
            "category": "culture",
            "description": "Historic Shinto shrine famous for its azalea garden and traditional architecture",
            "coordinates": {"lat": 35.7281, "lng": 139.7617},
            "price_range": {"min": 0, "max": 3, "currency": "USD"},
            "popularity": 8,
            "tags": ["culture", "shrine", "history", "garden"],
        },
        {
            "name": "Sushi Dai",
            "category": "dining",
            "description": "Sushi restaurant in Tsukiji known for the freshest tuna and traditional preparation",
            "coordinates": {"lat": 35.6654, "lng": 139.7707},
            "price_range": {"min": 25, "max": 40, "currency": "USD"},
            "popularity": 10,
            "tags": ["dining", "sushi", "traditional", "tsukiji"],
        },
        {
            "name": "Kanda Matsuya",
            "category": "dining",
            "description": "Historic soba noodle shop established in 1884",
            "coordinates": {"lat": 35.6938, "lng": 139.7707},
            "price_range": {"min": 12, "max": 25, "currency": "USD"},
            "popularity": 8,
            "tags": ["dining", "soba", "traditional", "historic"],
        },
    ],
    "new york": [
        {
            "name": "Metropolitan Museum of Art",
            "category": "culture",
            "description": "One of the world's largest art museums, housing over 2 million works",
            "coordinates": {"lat": 40.7794, "lng": -73.9632},
            "price_range": {"min": 25, "max": 30, "currency": "USD"},
            "popularity": 10,
            "tags": ["culture", "art", "museum", "history"],
        },
        {
            "name": "Guggenheim Museum",
            "category": "culture",
            "description": "Spiral-designed museum by Frank Lloyd Wright showcasing modern and contemporary art",
            "coordinates": {"lat": 40.7829, "lng": -73.9589},
            "price_range": {"min": 25, "max": 30, "currency": "USD"},
            "popularity": 9,
            "tags": ["culture", "art", "museum", "architecture"],
        },
        {
            "name": "Tenement Museum",
            "category": "culture",
            "description": "Preserved tenement building telling the stories of immigrant families on the Lower East Side",
            "coordinates": {"lat": 40.7188, "lng": -73.9900},
            "price_range": {"min": 25, "max": 35, "currency": "USD"},
            "popularity": 8,
            "tags": ["culture", "history", "museum", "immigration"],
        },
        {
            "name": "Peter Luger Steakhouse",
            "category": "dining",
            "description": "Brooklyn steakhouse serving dry-aged porterhouse steaks since 1887",
            "coordinates": {"lat": 40.7081, "lng": -73.9571},
            "price_range": {"min": 60, "max": 120, "currency": "USD"},
            "popularity": 10,
            "tags": ["dining", "steakhouse", "brooklyn"],
        },
        {
            "name": "Katz's Delicatessen",
            "category": "dining",
            "description": "Jewish deli famous for its pastrami sandwiches",
            "coordinates": {"lat": 40.7223, "lng": -73.9873},
            "price_range": {"min": 15, "max": 30, "currency": "USD"},
            "popularity": 9,
            "tags": ["dining", "deli", "pastrami", "iconic"],
        },
        {
            "name": "Joe's Pizza",
            "category": "dining",
            "description": "Classic New York pizza joint serving thin crust pizza since 1975",
            "coordinates": {"lat": 40.7505, "lng": -73.9934},
            "price_range": {"min": 3, "max": 8, "currency": "USD"},
            "popularity": 8,
            "tags": ["dining", "pizza", "classic", "casual"],
        },
    ],
}

# Base coordinates used to place synthesized venues
DESTINATION_COORDINATES: dict[str, tuple[float, float]] = {
    "paris": (48.8566, 2.3522),
    "barcelona": (41.3851, 2.1734),
    "rome": (41.9028, 12.4964),
    "london": (51.5074, -0.1278),
    "new york": (40.7128, -74.0060),
    "tokyo": (35.6762, 139.6503),
    "bali": (-8.3405, 115.0920),
    "bangkok": (13.7563, 100.5018),
    "dubai": (25.2048, 55.2708),
    "amsterdam": (52.3676, 4.9041),
    "cancun": (21.1619, -86.8515),
    "tulum": (20.2114, -87.4654),
}


def match_destination(destination: str, table: dict) -> str | None:
    """Exact key match first, then substring match in either direction."""
    dest = (destination or "").strip().lower()
    if not dest:
        return None
    if dest in table:
        return dest
    for key in table:
        if key in dest or dest in key:
            return key
    return None


def destination_coordinates(destination: str) -> tuple[float, float]:
    key = match_destination(destination, DESTINATION_COORDINATES)
    return DESTINATION_COORDINATES[key] if key else (0.0, 0.0)
