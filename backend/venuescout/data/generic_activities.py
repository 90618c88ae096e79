"""Generic activity templates — synthesized when no real venue data exists.

`{destination}` in names and descriptions is replaced with the trip destination.
"""

GENERIC_ACTIVITIES: dict[str, list[dict]] = {
    "culture": [
        {
            "name": "Local History Museum",
            "description": "Explore the history and cultural heritage of {destination}",
            "price_range": {"min": 10, "max": 20, "currency": "USD", "level": 2},
        },
        {
            "name": "Cultural District Walking Tour",
            "description": "Self-guided tour through the historic heart of {destination}",
            "price_range": {"min": 0, "max": 15, "currency": "USD", "level": 1},
        },
        {
            "name": "Traditional Art Gallery",
            "description": "Discover local artists and traditional art forms in {destination}",
            "price_range": {"min": 5, "max": 15, "currency": "USD", "level": 1},
        },
    ],
    "dining": [
        {
            "name": "Local Cuisine Restaurant",
            "description": "Authentic local dishes and traditional flavors of {destination}",
            "price_range": {"min": 20, "max": 50, "currency": "USD", "level": 3},
        },
        {
            "name": "Traditional Market Food Tour",
            "description": "Sample local street food and market specialties in {destination}",
            "price_range": {"min": 15, "max": 30, "currency": "USD", "level": 2},
        },
        {
            "name": "Neighborhood Café",
            "description": "Cozy local café for experiencing daily life in {destination}",
            "price_range": {"min": 5, "max": 15, "currency": "USD", "level": 1},
        },
    ],
    "nature": [
        {
            "name": "City Central Park",
            "description": "Green oasis in the heart of {destination}",
            "price_range": {"min": 0, "max": 5, "currency": "USD", "level": 1},
        },
        {
            "name": "Scenic Viewpoint",
            "description": "Panoramic views of {destination} and the surrounding landscape",
            "price_range": {"min": 0, "max": 10, "currency": "USD", "level": 1},
        },
        {
            "name": "Botanical Garden",
            "description": "Gardens showcasing native plants and quiet walking paths",
            "price_range": {"min": 5, "max": 15, "currency": "USD", "level": 2},
        },
    ],
    "shopping": [
        {
            "name": "Traditional Market",
            "description": "Local market with handcrafted goods and regional specialties",
            "price_range": {"min": 10, "max": 100, "currency": "USD", "level": 2},
        },
        {
            "name": "Artisan Quarter",
            "description": "Handmade items from local craftspeople in {destination}",
            "price_range": {"min": 15, "max": 75, "currency": "USD", "level": 2},
        },
    ],
    "nightlife": [
        {
            "name": "Local Wine Bar",
            "description": "Intimate setting to enjoy regional wines and meet locals",
            "price_range": {"min": 8, "max": 20, "currency": "USD", "level": 2},
        },
        {
            "name": "Traditional Music Venue",
            "description": "Local music and cultural performances in {destination}",
            "price_range": {"min": 15, "max": 35, "currency": "USD", "level": 3},
        },
    ],
    "attraction": [
        {
            "name": "{destination} Old Town",
            "description": "Wander the oldest streets and main squares of {destination}",
            "price_range": {"min": 0, "max": 0, "currency": "USD", "level": 1},
        },
        {
            "name": "{destination} Visitor Center",
            "description": "Maps, local tips and guided tour bookings for {destination}",
            "price_range": {"min": 0, "max": 10, "currency": "USD", "level": 1},
        },
    ],
}

DEFAULT_GENERIC_CATEGORIES: tuple[str, ...] = ("culture", "dining", "attraction")
