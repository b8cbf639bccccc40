"""Default relevance vocabulary used when configuration does not override it."""

DEFAULT_KEYWORDS: tuple[str, ...] = (
    "pakistan",
    "war",
    "jammu",
    "punjab",
    "drone",
    "army",
    "defense",
    "missiles",
    "air",
    "navy",
    "border",
    "drones",
    "artillery",
    "shelling",
    "shells",
    "military",
    "blasts",
    "kashmir",
    "rajasthan",
    "civilians",
    "injury",
    "pak",
    "jets",
    "bombs",
    "loc",
    "gunfire",
)

DEFAULT_REGION_TERMS: tuple[str, ...] = (
    "india",
    "indian",
    "delhi",
    "modi",
    "mumbai",
    "bangalore",
    "bengaluru",
    "chennai",
    "kolkata",
)

DEFAULT_TOPIC_TERMS: tuple[str, ...] = ("security", "military", "defence")

__all__ = ["DEFAULT_KEYWORDS", "DEFAULT_REGION_TERMS", "DEFAULT_TOPIC_TERMS"]
