"""
Automotive vocabulary shared by the query parser, compatibility generator
and relevance scorer.

Makes are an Enum; every spelling a shopper or a catalog item may use is
mapped onto one member by `Make.from_token` / `make_variants`. Models are kept
in a single canonical spelling (e.g. "rav-4", "cr-v", "santa fe") and every
other spelling is resolved by `normalize_model`.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Make(str, Enum):
    """Known vehicle makes"""

    TOYOTA = "toyota"
    HONDA = "honda"
    FORD = "ford"
    CHEVROLET = "chevrolet"
    NISSAN = "nissan"
    BMW = "bmw"
    MERCEDES_BENZ = "mercedes-benz"
    AUDI = "audi"
    VOLKSWAGEN = "volkswagen"
    HYUNDAI = "hyundai"
    KIA = "kia"
    SUBARU = "subaru"
    MAZDA = "mazda"
    MITSUBISHI = "mitsubishi"
    LEXUS = "lexus"
    ACURA = "acura"
    INFINITI = "infiniti"
    CADILLAC = "cadillac"
    BUICK = "buick"
    GMC = "gmc"
    JEEP = "jeep"
    CHRYSLER = "chrysler"
    DODGE = "dodge"
    RAM = "ram"
    VOLVO = "volvo"
    PORSCHE = "porsche"
    JAGUAR = "jaguar"
    LAND_ROVER = "land rover"
    MINI = "mini"
    FIAT = "fiat"
    ALFA_ROMEO = "alfa romeo"
    TESLA = "tesla"

    @classmethod
    def from_token(cls, token: str) -> Optional["Make"]:
        """
        Resolve a shopper-typed token (or phrase) to a Make

        Args:
            token: Lowercased token, e.g. "chevy" or "land rover"

        Returns:
            Matching Make or None
        """
        if not token:
            return None
        token = token.strip().lower()
        try:
            return cls(token)
        except ValueError:
            return MAKE_ALIASES.get(token)


# Shopper-typed aliases accepted by the query parser
MAKE_ALIASES: Dict[str, Make] = {
    "chevy": Make.CHEVROLET,
    "vw": Make.VOLKSWAGEN,
    "mercedes": Make.MERCEDES_BENZ,
    "mercedes benz": Make.MERCEDES_BENZ,
    "landrover": Make.LAND_ROVER,
    "land-rover": Make.LAND_ROVER,
    "alfa-romeo": Make.ALFA_ROMEO,
}

# Extra spellings found in catalog text (name/description)
MAKE_TEXT_VARIANTS: Dict[Make, Tuple[str, ...]] = {
    Make.CHEVROLET: ("chevy", "chev"),
    Make.NISSAN: ("datsun",),
    Make.MERCEDES_BENZ: ("mercedes", "merc", "mercedes benz"),
    Make.VOLKSWAGEN: ("vw", "volks"),
    Make.JAGUAR: ("jag",),
    Make.LAND_ROVER: ("landrover", "land-rover"),
}

# Canonical model spellings per make
MAKE_MODELS: Dict[Make, Tuple[str, ...]] = {
    Make.TOYOTA: (
        "corolla", "camry", "prius", "rav-4", "highlander", "sienna", "tacoma",
        "tundra", "4runner", "sequoia", "land cruiser", "yaris", "avalon", "c-hr",
    ),
    Make.HONDA: (
        "civic", "accord", "cr-v", "pilot", "odyssey", "ridgeline", "fit",
        "hr-v", "passport", "insight",
    ),
    Make.FORD: (
        "focus", "fusion", "escape", "explorer", "f-150", "f-250", "f-350",
        "mustang", "edge", "expedition", "ranger", "fiesta", "bronco",
    ),
    Make.CHEVROLET: (
        "malibu", "impala", "equinox", "tahoe", "silverado", "corvette", "cruze",
        "sonic", "trax", "traverse", "camaro", "suburban", "colorado",
    ),
    Make.NISSAN: (
        "altima", "sentra", "rogue", "pathfinder", "frontier", "titan", "versa",
        "murano", "armada", "maxima",
    ),
    Make.BMW: ("3-series", "5-series", "7-series", "x1", "x3", "x5", "x7", "z4", "i3", "i8"),
    Make.MERCEDES_BENZ: ("c-class", "e-class", "s-class", "glc", "gle", "gls", "a-class", "cla", "gla"),
    Make.AUDI: ("a3", "a4", "a6", "a8", "q3", "q5", "q7", "q8", "tt", "r8"),
    Make.VOLKSWAGEN: ("jetta", "passat", "golf", "tiguan", "atlas", "beetle", "arteon"),
    Make.HYUNDAI: ("elantra", "sonata", "tucson", "santa fe", "accent", "veloster", "kona", "palisade"),
    Make.KIA: ("optima", "forte", "soul", "sportage", "sorento", "rio", "stinger", "telluride"),
    Make.SUBARU: ("outback", "forester", "impreza", "crosstrek", "legacy", "ascent", "wrx"),
    Make.MAZDA: ("mazda3", "mazda6", "cx-5", "cx-9", "cx-30", "mx-5"),
    Make.JEEP: ("wrangler", "grand cherokee", "cherokee", "compass", "renegade", "gladiator"),
    Make.DODGE: ("charger", "challenger", "durango", "journey", "grand caravan"),
    Make.GMC: ("sierra", "yukon", "acadia", "terrain", "canyon"),
    Make.ACURA: ("mdx", "rdx", "tlx", "ilx", "integra"),
    Make.TESLA: ("model 3", "model s", "model x", "model y"),
}

# Shorthand spellings the parser must normalise explicitly
MODEL_NORMALIZATION: Dict[str, str] = {
    "rav4": "rav-4",
    "crv": "cr-v",
    "hrv": "hr-v",
    "chr": "c-hr",
    "f150": "f-150",
    "f250": "f-250",
    "f350": "f-350",
}

# Single-word terms that name a part rather than a vehicle
AUTO_PART_TERMS = frozenset({
    "battery", "brake", "brakes", "pad", "pads", "rotor", "rotors", "filter", "filters",
    "oil", "engine", "transmission", "alternator", "starter", "radiator", "coolant",
    "spark", "plug", "plugs", "belt", "belts", "hose", "hoses", "pump", "sensor", "sensors",
    "light", "lights", "headlight", "headlights", "taillight", "taillights", "bulb", "bulbs",
    "fuse", "fuses", "relay", "switch", "motor", "compressor", "clutch", "tire", "tires",
    "wheel", "wheels", "suspension", "shock", "shocks", "strut", "struts", "spring", "springs",
    "exhaust", "muffler", "catalytic", "converter", "gasket", "seal", "bearing", "bearings",
    "fluid", "antifreeze", "windshield", "wiper", "wipers", "blade", "blades", "mirror",
    "door", "handle", "caliper", "calipers", "timing", "chain", "absorber", "thermostat",
    "injector", "injectors", "cabin", "air", "fuel", "steering", "axle", "mount", "mounts",
    "lamp", "horn", "coil", "coils", "arm", "arms", "bushing", "rack",
})

# Dropped from queries entirely
STOPWORDS = frozenset({
    "for", "the", "a", "an", "and", "or", "with", "of", "to", "in", "on", "my",
    "fits", "fitting",
})

# Models that are also everyday words; only read as a model when a year or
# make was already recognised in the same query
CONTEXT_REQUIRED_MODELS = frozenset({
    "fit", "edge", "focus", "escape", "soul", "rio", "atlas", "golf", "legacy",
    "compass", "journey", "terrain", "canyon", "passport", "insight", "pilot",
    "accent", "sonic", "ranger", "titan", "rogue", "frontier", "fusion", "ascent",
    "charger", "challenger", "sierra", "beetle", "forte", "versa", "integra",
})

# Kept as product terms but never treated as a vehicle model
GENERIC_TERMS = frozenset({
    "parts", "part", "accessories", "accessory", "kit", "set", "oem", "aftermarket",
    "front", "rear", "left", "right", "upper", "lower", "new", "used", "replacement",
    "assembly", "premium", "performance", "heavy", "duty",
})

# Product terms that add nothing to relevance
NON_SCORING_TERMS = frozenset({"parts", "accessories"})

# Part categories recognised in catalog text when no vehicle is named
PART_CATEGORY_PHRASES: Tuple[str, ...] = (
    "oil filter", "air filter", "cabin filter", "fuel filter", "brake pad",
    "brake rotor", "brake caliper", "spark plug", "timing belt", "serpentine belt",
    "shock absorber", "strut", "headlight", "taillight", "alternator", "starter",
    "radiator", "water pump", "fuel pump", "wiper blade", "control arm",
    "wheel bearing", "ignition coil", "oxygen sensor",
)

# Parts that fit essentially every vehicle
UNIVERSAL_PARTS: Tuple[str, ...] = ("battery", "oil", "coolant", "brake fluid", "fuse", "relay")

POPULAR_MAKES: Tuple[Make, ...] = (Make.TOYOTA, Make.HONDA, Make.FORD, Make.CHEVROLET, Make.NISSAN)

# Production years for a few high-volume models: (first, last) inclusive
PRODUCTION_YEARS: Dict[Tuple[Make, str], Tuple[int, int]] = {
    (Make.TOYOTA, "camry"): (2018, 2024),
    (Make.TOYOTA, "corolla"): (2019, 2024),
    (Make.TOYOTA, "rav-4"): (2019, 2024),
    (Make.TOYOTA, "tacoma"): (2016, 2023),
    (Make.HONDA, "civic"): (2016, 2024),
    (Make.HONDA, "accord"): (2018, 2024),
    (Make.HONDA, "cr-v"): (2017, 2024),
    (Make.FORD, "f-150"): (2015, 2024),
    (Make.FORD, "mustang"): (2015, 2024),
    (Make.CHEVROLET, "silverado"): (2019, 2024),
    (Make.CHEVROLET, "equinox"): (2018, 2024),
    (Make.NISSAN, "altima"): (2019, 2024),
    (Make.NISSAN, "rogue"): (2021, 2024),
}

# Popular part names used for query suggestions
POPULAR_PARTS: Tuple[str, ...] = (
    "battery", "brake pads", "oil filter", "air filter", "spark plugs",
    "alternator", "starter", "radiator", "headlight", "taillight",
    "tire", "wheel", "engine oil", "transmission fluid", "coolant",
    "brake fluid", "power steering fluid", "windshield wipers",
    "cabin filter", "fuel filter", "timing belt", "serpentine belt",
)

# Static popular searches merged with tracked ones: (term, count)
STATIC_POPULAR_SEARCHES: Tuple[Tuple[str, int], ...] = (
    ("brake pads", 1250),
    ("engine oil", 980),
    ("air filter", 875),
    ("spark plugs", 720),
    ("tires", 650),
    ("battery", 580),
    ("alternator", 520),
    ("brake rotors", 480),
    ("transmission fluid", 420),
    ("radiator", 380),
)


def make_variants(make: Make) -> Tuple[str, ...]:
    """All spellings of a make that may appear in catalog text"""
    return (make.value,) + MAKE_TEXT_VARIANTS.get(make, ())


def multi_word_makes() -> List[Tuple[str, Make]]:
    """Multi-word make phrases (longest first) for substring matching"""
    phrases = [(make.value, make) for make in Make if " " in make.value]
    phrases += [(alias, make) for alias, make in MAKE_ALIASES.items() if " " in alias]
    return sorted(phrases, key=lambda pair: len(pair[0]), reverse=True)


def model_variants(model: str) -> Tuple[str, ...]:
    """
    Spellings of a model: canonical, without hyphen, hyphen as space, etc.

    Example:
        "rav-4" -> ("rav-4", "rav4", "rav 4")
    """
    base = (model or "").strip().lower()
    if not base:
        return ()
    forms = [
        base,
        base.replace("-", ""),
        base.replace("-", " "),
        base.replace(" ", "-"),
        base.replace(" ", ""),
    ]
    variants = []
    for form in forms:
        if form and form not in variants:
            variants.append(form)
    return tuple(variants)


def _build_model_index() -> Dict[str, Tuple[str, Make]]:
    index: Dict[str, Tuple[str, Make]] = {}
    for make, models in MAKE_MODELS.items():
        for model in models:
            for variant in model_variants(model):
                index.setdefault(variant, (model, make))
    return index


# variant spelling -> (canonical model, make)
MODEL_INDEX: Dict[str, Tuple[str, Make]] = _build_model_index()


def normalize_model(token: str) -> str:
    """
    Canonical spelling of a model token

    Known shorthands and every variant of a known model map to the canonical
    form; unknown tokens are returned lowercased and trimmed.
    """
    token = (token or "").strip().lower()
    if token in MODEL_NORMALIZATION:
        return MODEL_NORMALIZATION[token]
    if token in MODEL_INDEX:
        return MODEL_INDEX[token][0]
    return token


def is_known_model(token: str) -> bool:
    token = (token or "").strip().lower()
    return token in MODEL_NORMALIZATION or token in MODEL_INDEX
