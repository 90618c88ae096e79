"""Entity extractor — pulls venue mentions out of free-form social text.

Extraction is table driven: an ordered tuple of ExtractionRule values is run
over the text, every match is normalized into a candidate name, and each
candidate must pass a two-phase admission test before it is scored:

  1. Structural validity — length bounds, leading capital, no denylist hit.
  2. Business-likeness   — at least one allow pattern or known venue shape.

Confidence starts at the rule's base and is nudged by business keywords,
possessive form, nearby sentiment and reporting verbs, then clamped to 0-1.

The rest of the module holds the lightweight text analysis used when parsing
social posts (sentiment, prices, addresses, timing, categorization).
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any

from venuescout.models.venue import VenueCategory
from venuescout.services.config import discovery_config

logger = logging.getLogger(__name__)

cfg = discovery_config.extraction


# ---------- Rule tables ----------

_TOKEN = r"[A-Z][a-zA-Z\u00C0-\u017F]*(?:['\u2019]s)?"
_JOIN = r"(?:\s+(?:&|de|del|de la|of|the|y)\s+|\s+)"
_PROPER = rf"{_TOKEN}(?:{_JOIN}{_TOKEN}){{0,5}}"

VENUE_TYPE_WORDS: tuple[str, ...] = (
    "Restaurant", "Restaurante", "Cafe", "Café", "Bar", "Club", "Hotel", "Resort",
    "Museum", "Museo", "Gallery", "Park", "Parque", "Beach", "Playa", "Market",
    "Mercado", "Mall", "Center", "Centre", "Cenote", "Steakhouse", "Grill",
    "Bistro", "Kitchen", "Taqueria", "Pizzeria", "Cantina", "Lodge", "Inn",
    "Hostel", "Temple", "Templo", "Shrine", "Cathedral", "Church", "Palace",
    "Garden", "Gardens", "Plaza", "Theater", "Theatre", "Spa", "Lounge", "Pub",
    "Brewery", "Winery", "Deli", "Delicatessen", "Bakery", "Castle", "Tower",
    "Zoo", "Aquarium", "Sanctuary", "Reserve", "Terraces",
)
_TYPE_ALT = "|".join(re.escape(w) for w in VENUE_TYPE_WORDS)
_BUSINESS_KEYWORD = re.compile(rf"\b(?:{_TYPE_ALT})\b", re.IGNORECASE)


@dataclass(frozen=True)
class ExtractionRule:
    """One extraction pattern. The venue name is captured in group 'name'."""
    name: str
    pattern: re.Pattern
    base_confidence: float
    category_hint: VenueCategory | None = None


DEFAULT_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        name="recommendation",
        pattern=re.compile(
            r"(?i:\b(?:recommend(?:ed)?|suggest|try|visit(?:ed)?|check(?:ed)?\s+out|go\s+to|went\s+to"
            r"|ate\s+at|stayed\s+at|dined\s+at|loved)\s+)"
            rf"(?P<name>{_PROPER})"
        ),
        base_confidence=0.6,
    ),
    ExtractionRule(
        name="venue_type",
        pattern=re.compile(rf"\b(?P<name>{_TOKEN}(?:{_JOIN}{_TOKEN}){{0,4}}\s+(?:{_TYPE_ALT}))\b"),
        base_confidence=0.65,
    ),
    ExtractionRule(
        name="positive_descriptor",
        pattern=re.compile(
            rf"\b(?P<name>{_PROPER})\s+"
            r"(?i:is\s+amazing|is\s+great|is\s+excellent|is\s+fantastic|was\s+incredible|is\s+the\s+best"
            r"|was\s+amazing|was\s+delicious|is\s+a\s+must)"
        ),
        base_confidence=0.55,
    ),
    ExtractionRule(
        name="location_context",
        pattern=re.compile(rf"\b(?P<name>{_PROPER})\s+(?:in|near|at|on)\s+[A-Z][a-zA-Z]+"),
        base_confidence=0.5,
    ),
    ExtractionRule(
        name="quoted",
        pattern=re.compile(r"[\"\u201c](?P<name>[A-Z][^\"\u201d]{2,35})[\"\u201d]"),
        base_confidence=0.45,
    ),
)

# Structural denylist: sentence fragments and known bad extractions
DENY_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"^(?:Do|He|She|I|We|They|You|It|This|That|These|Those|There|Here|When|Where|What|Why|How|Who|My|Our|Your|Their|If|But|And|So|Also|Just)\b"),
    re.compile(r"^(?:Nice|Good|Bad|Best|Worst|Amazing|Awesome|Excellent|Fantastic|Perfect|Wonderful|Beautiful|Highly|Really|Very)\b"),
    re.compile(r"^(?:Everyone's|I've|We've|You've|They've|What's|That's|It's|I'm|We're)\b"),
    re.compile(r"^(?:Last|Next|Every|Yesterday|Today|Tomorrow|Tonight|Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)\b"),
    re.compile(r"\b(?:goes to|been to|stuck in|more information|went to|re-doing|is such a|are just|in general|due to the|currently poses)\b", re.IGNORECASE),
    re.compile(r"\b(?:pregnancy|transplants?|descent|motorcycle|threat|weather|climate)\b", re.IGNORECASE),
    re.compile(rf"^(?:{_TYPE_ALT}|Attraction|Place|Spot|Area|Zone)$", re.IGNORECASE),
    re.compile(r"^\d+$"),
    re.compile(r"\s(?:is|was|are|were|the|and|or)$"),
    re.compile(
        r"^(?:Period Has Now Ended|The Key Specs|Basic Troubleshooting|Posted This|Common App"
        r"|Congressional District|Cultural Experience|Local Experience|Travel Experience)$",
        re.IGNORECASE,
    ),
)

# Business-likeness allow list
ALLOW_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(rf"\b(?:{_TYPE_ALT})$", re.IGNORECASE),                        # venue-type suffix
    re.compile(rf"^(?:{_TYPE_ALT})\s+(?:of|de|del)\s+", re.IGNORECASE),        # "Museum of ...", "Museo de ..."
    re.compile(r"^[A-Z][a-zA-Z]+['\u2019]s\b"),                                # possessive name
    re.compile(r"^(?:Las|Los|La|El|San|Santa|Santo|Le|Les|Il|Casa|Cenote|Templo|Playa|Isla)\s+[A-Z]"),
    re.compile(r"^[A-Z][a-z]+\s+&\s+[A-Z][a-z]+"),                              # "Smith & Wollensky"
    re.compile(r"^[A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+){1,4}$"),                 # multi proper noun
)

# Single-word names that are still known venue shapes
KNOWN_VENUE_SHAPES: tuple[re.Pattern, ...] = (
    re.compile(r"Rooftop", re.IGNORECASE),
    re.compile(r"^Hierve\b"),
    re.compile(r"^Barranca\b"),
    re.compile(r"^Mercado\b"),
    re.compile(r"^Tulum\b"),
)

_POSSESSIVE = re.compile(r"^[A-Z][a-zA-Z]+['\u2019]s\b")
_TRAILING_JUNK = re.compile(r"(?:\s+(?:&|de|del|of|the|y|and|in|at|on))+$")

POSITIVE_WORDS: tuple[str, ...] = (
    "amazing", "awesome", "excellent", "fantastic", "great", "love", "loved",
    "perfect", "wonderful", "incredible", "outstanding", "brilliant", "superb",
    "highly recommend", "must visit", "must see", "must do", "worth it",
    "don't miss", "favorite", "favourite", "best", "delicious",
)
NEGATIVE_WORDS: tuple[str, ...] = (
    "terrible", "awful", "horrible", "worst", "hate", "hated", "disappointing",
    "overpriced", "tourist trap", "skip", "avoid", "waste", "boring",
    "not worth", "overrated", "crowded", "expensive",
)
REPORTING_WORDS: tuple[str, ...] = (
    "said", "heard", "told", "read that", "apparently", "supposedly", "rumor", "someone mentioned",
)

_PRICE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\$(\d+(?:\.\d{2})?)\s*(?:per person|pp|each|USD|dollars?)?", re.IGNORECASE),
    re.compile(r"(?:around|about|roughly|approximately)\s*\$(\d+)", re.IGNORECASE),
)
_ADDRESS_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\d+\s+[A-Za-z\s]+?(?:Street|St|Avenue|Ave|Boulevard|Blvd|Road|Rd|Drive|Dr|Lane|Ln|Plaza|Plz)\b"),
    re.compile(r"(?:in|at|near)\s+([A-Z][a-zA-Z\s]{3,25}?(?:Zone|Area|District|Quarter|Neighborhood))"),
)
_TIMING_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\d{1,2}(?::\d{2})?\s*(?:am|pm)\s*-\s*\d{1,2}(?::\d{2})?\s*(?:am|pm)", re.IGNORECASE),
    re.compile(r"\b\d+(?:-\d+)?\s*(?:hours?|hrs?|minutes?|mins?|days?)\b", re.IGNORECASE),
)

# Ordered keyword → category table (first hit wins)
CATEGORY_KEYWORDS: tuple[tuple[VenueCategory, tuple[str, ...], tuple[str, ...]], ...] = (
    # (category, name keywords, context keywords)
    (VenueCategory.ACCOMMODATION, ("hotel", "resort", "hostel", "lodge", " inn"), ()),
    (VenueCategory.DINING, ("restaurant", "restaurante", "cafe", "café", "bistro", "grill", "steakhouse",
                            "kitchen", "taqueria", "pizzeria", "deli", "bakery", "warung"), ("food", "eat", "meal", "dinner", "lunch")),
    (VenueCategory.CULTURE, ("museum", "museo", "gallery", "temple", "templo", "church", "cathedral",
                             "palace", "shrine", "theater", "theatre", "castle"), ("culture", "history", "art")),
    (VenueCategory.NIGHTLIFE, ("bar", "club", "pub", "lounge", "cantina", "brewery"), ("nightlife", "drinks", "cocktail")),
    (VenueCategory.NATURE, ("park", "parque", "beach", "playa", "garden", "cenote", "reserve", "sanctuary",
                            "terraces", "forest"), ("outdoor", "hiking", "nature", "swim")),
    (VenueCategory.SHOPPING, ("market", "mercado", "mall", "shop", "store", "bazaar"), ("shopping", "buy", "souvenir")),
    (VenueCategory.WELLNESS, ("spa", "yoga", "retreat"), ("massage", "wellness")),
)


# ---------- Data structures ----------


@dataclass
class ExtractedEntity:
    """A candidate venue mention."""

    name: str
    confidence: float
    source_type: str = "text"
    context: str = ""
    rule: str = ""                   # rule that produced the best match
    category_hint: VenueCategory | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "confidence": round(self.confidence, 3),
            "source_type": self.source_type,
            "context": self.context,
            "rule": self.rule,
            "category_hint": self.category_hint.value if self.category_hint else None,
        }


@dataclass
class PriceMention:
    amount: float
    context: str
    raw: str


@dataclass
class ParsedPost:
    """Social post reduced to the signals the pipeline needs."""

    id: str
    title: str
    content: str
    score: int = 0
    num_comments: int = 0
    subreddit: str | None = None
    url: str | None = None
    entities: list[ExtractedEntity] = field(default_factory=list)
    prices: list[PriceMention] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    timing: list[str] = field(default_factory=list)
    sentiment: float = 0.0


@dataclass
class VenueMention:
    """Aggregated mentions of one venue name across posts."""

    name: str
    mention_count: int = 0
    best_confidence: float = 0.0
    sentiments: list[float] = field(default_factory=list)
    prices: list[PriceMention] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    post_ids: list[str] = field(default_factory=list)
    contexts: list[str] = field(default_factory=list)
    category_hint: VenueCategory | None = None

    @property
    def avg_sentiment(self) -> float:
        return sum(self.sentiments) / len(self.sentiments) if self.sentiments else 0.0


# ---------- Extractor ----------


class EntityExtractor:
    """Rule-table driven venue mention extractor. Pure; never raises."""

    def __init__(
        self,
        rules: tuple[ExtractionRule, ...] = DEFAULT_RULES,
        deny_patterns: tuple[re.Pattern, ...] = DENY_PATTERNS,
        allow_patterns: tuple[re.Pattern, ...] = ALLOW_PATTERNS,
        known_shapes: tuple[re.Pattern, ...] = KNOWN_VENUE_SHAPES,
    ):
        self.rules = rules
        self.deny_patterns = deny_patterns
        self.allow_patterns = allow_patterns
        self.known_shapes = known_shapes

    def extract(self, text: Any, source_type: str = "text") -> list[ExtractedEntity]:
        """Return admitted candidates, one per name, highest confidence first."""
        if not isinstance(text, str) or not text.strip():
            return []
        try:
            return self._extract(text, source_type)
        except Exception as e:  # regex engine errors on pathological input
            logger.warning(f"Entity extraction failed, returning no candidates: {e}")
            return []

    def extract_above(self, text: Any, threshold: float | None = None) -> list[ExtractedEntity]:
        limit = cfg.default_threshold if threshold is None else threshold
        return [e for e in self.extract(text) if e.confidence >= limit]

    def _extract(self, text: str, source_type: str) -> list[ExtractedEntity]:
        best: "OrderedDict[str, ExtractedEntity]" = OrderedDict()

        for rule in self.rules:
            for match in rule.pattern.finditer(text):
                raw = match.group("name")
                name = self.normalize_name(raw)
                if not name:
                    continue
                if not self.is_structurally_valid(name) or not self.is_business_like(name):
                    continue

                start, end = match.span("name")
                window = text[max(0, start - cfg.context_window): end + cfg.context_window]
                confidence = self.score_candidate(name, rule.base_confidence, window)
                entity = ExtractedEntity(
                    name=name,
                    confidence=confidence,
                    source_type=source_type,
                    rule=rule.name,
                    context=" ".join(window.split()),
                    category_hint=rule.category_hint or categorize(name, window),
                )

                key = name.strip().lower()
                current = best.get(key)
                if current is None or entity.confidence > current.confidence:
                    best[key] = entity

        return sorted(best.values(), key=lambda e: (-e.confidence, e.name.lower()))

    # ----- admission -----

    @staticmethod
    def normalize_name(raw: str) -> str:
        name = raw.strip().strip("\"'\u201c\u201d")
        name = " ".join(name.split())
        name = name.rstrip(".,;:!?)")
        name = _TRAILING_JUNK.sub("", name)
        if name.isupper() and len(name) > 3:
            name = name.title()
        return name.strip()

    def is_structurally_valid(self, name: str) -> bool:
        if not (cfg.min_name_length <= len(name) <= cfg.max_name_length):
            return False
        if not name[0].isupper():
            return False
        return not any(p.search(name) for p in self.deny_patterns)

    def is_business_like(self, name: str) -> bool:
        if any(p.search(name) for p in self.allow_patterns):
            return True
        return any(p.search(name) for p in self.known_shapes)

    # ----- scoring -----

    def score_candidate(self, name: str, base: float, window: str) -> float:
        confidence = base
        if _BUSINESS_KEYWORD.search(name):
            confidence += cfg.business_keyword
        if _POSSESSIVE.search(name):
            confidence += cfg.possessive

        near = window.lower()
        name_lower = name.lower()
        near_without_name = near.replace(name_lower, " ")
        if any(w in near_without_name for w in POSITIVE_WORDS):
            confidence += cfg.positive_context
        if any(re.search(rf"\b{re.escape(w)}\b", near_without_name) for w in REPORTING_WORDS):
            confidence += cfg.reporting_context

        if len(name.split()) > cfg.long_name_words or len(name) > cfg.long_name_chars:
            confidence += cfg.excessive_length

        return round(min(max(confidence, 0.0), 1.0), 3)


# ---------- Text analysis helpers ----------


def analyze_sentiment(text: str) -> float:
    """Lexicon sentiment in [-1, 1]; 0 when no sentiment words are present."""
    if not text:
        return 0.0
    lowered = text.lower()
    positive = sum(1 for w in POSITIVE_WORDS if w in lowered)
    negative = sum(1 for w in NEGATIVE_WORDS if w in lowered)
    total = positive + negative
    if total == 0:
        return 0.0
    return (positive - negative) / total


def extract_prices(text: str) -> list[PriceMention]:
    text = text or ""
    prices: list[PriceMention] = []
    seen_spans: set[int] = set()
    for pattern in _PRICE_PATTERNS:
        for m in pattern.finditer(text):
            try:
                amount = float(m.group(1))
            except (TypeError, ValueError):
                continue
            dollar_at = text.find("$", m.start())
            if dollar_at in seen_spans:
                continue
            seen_spans.add(dollar_at)
            if 0 < amount < 1000:
                start = max(0, m.start() - 20)
                prices.append(PriceMention(amount=amount, context=text[start: m.end() + 30].strip(), raw=m.group(0).strip()))
    return prices


def extract_addresses(text: str) -> list[str]:
    found: list[str] = []
    for pattern in _ADDRESS_PATTERNS:
        for m in pattern.finditer(text or ""):
            value = (m.group(1) if m.groups() else m.group(0)).strip()
            if value not in found:
                found.append(value)
    return found


def extract_timing(text: str) -> list[str]:
    found: list[str] = []
    for pattern in _TIMING_PATTERNS:
        for m in pattern.finditer(text or ""):
            value = m.group(0).strip()
            if value not in found:
                found.append(value)
    return found


def categorize(name: str, context: str = "") -> VenueCategory:
    """Best-guess category from the venue name, then its surrounding text."""
    name_l = f" {name.lower()} "
    context_l = (context or "").lower()
    for category, name_words, _ in CATEGORY_KEYWORDS:
        if any(re.search(rf"\b{re.escape(w.strip())}\b", name_l) for w in name_words):
            return category
    for category, _, context_words in CATEGORY_KEYWORDS:
        if any(re.search(rf"\b{re.escape(w)}\b", context_l) for w in context_words):
            return category
    return VenueCategory.ATTRACTION


def parse_post(post: dict, extractor: "EntityExtractor | None" = None) -> ParsedPost:
    """Reduce a raw social post record to extracted entities and text signals."""
    extractor = extractor or entity_extractor
    title = str(post.get("title") or "")
    body = str(post.get("selftext") or post.get("body") or "")
    content = f"{title} {body}".strip()
    return ParsedPost(
        id=str(post.get("id") or ""),
        title=title,
        content=body,
        score=int(post.get("score") or 0),
        num_comments=int(post.get("num_comments") or 0),
        subreddit=post.get("subreddit"),
        url=post.get("url"),
        entities=extractor.extract(content),
        prices=extract_prices(content),
        addresses=extract_addresses(content),
        timing=extract_timing(content),
        sentiment=analyze_sentiment(content),
    )


def aggregate_mentions(posts: list[ParsedPost], threshold: float | None = None) -> list[VenueMention]:
    """Group entity mentions by name across posts.

    Sorted by mention_count * (1 + avg_sentiment), name as tie-break.
    """
    limit = cfg.default_threshold if threshold is None else threshold
    mentions: dict[str, VenueMention] = {}
    for post in posts:
        for entity in post.entities:
            if entity.confidence < limit:
                continue
            key = entity.name.strip().lower()
            mention = mentions.get(key)
            if mention is None:
                mention = VenueMention(name=entity.name, category_hint=entity.category_hint)
                mentions[key] = mention
            mention.mention_count += 1
            mention.best_confidence = max(mention.best_confidence, entity.confidence)
            mention.sentiments.append(post.sentiment)
            mention.prices.extend(post.prices)
            mention.addresses.extend(a for a in post.addresses if a not in mention.addresses)
            if post.id and post.id not in mention.post_ids:
                mention.post_ids.append(post.id)
            if entity.context:
                mention.contexts.append(entity.context)

    return sorted(
        mentions.values(),
        key=lambda m: (-(m.mention_count * (1 + m.avg_sentiment)), m.name.lower()),
    )


# Singleton
entity_extractor = EntityExtractor()
