"""
Product Optimization Profiles

Read-only catalog of quality/size defaults per product category, and the
keyword rules that map free-text product hints onto a catalog key.
"""

from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

from product_imagery.engines.derivatives.schemas import ProcessingProfile, ProfileKey


PROFILE_CATALOG: Mapping[ProfileKey, ProcessingProfile] = MappingProxyType({
    ProfileKey.DEFAULT: ProcessingProfile(quality=70, thumbnail_quality=65, max_dimension=1000),
    ProfileKey.BUSINESS_CARD: ProcessingProfile(quality=75, thumbnail_quality=70, max_dimension=1200),
    ProfileKey.BANNER: ProcessingProfile(quality=65, thumbnail_quality=60, max_dimension=1600),
    ProfileKey.FLYER: ProcessingProfile(quality=72, thumbnail_quality=65, max_dimension=1200),
    ProfileKey.PREMIUM: ProcessingProfile(quality=85, thumbnail_quality=80, max_dimension=2000),
})

# Checked top to bottom; the first rule with a matching keyword wins.
# "card" sits above "premium" so "Premium Business Cards" resolves to BUSINESS_CARD.
KEYWORD_RULES: Tuple[Tuple[ProfileKey, Tuple[str, ...]], ...] = (
    (ProfileKey.BUSINESS_CARD, ("business card", "card")),
    (ProfileKey.BANNER, ("banner", "poster", "large format")),
    (ProfileKey.FLYER, ("flyer", "brochure", "leaflet")),
    (ProfileKey.PREMIUM, ("premium", "luxury", "high quality")),
)


def to_profile_key(name: Union[str, ProfileKey, None]) -> ProfileKey:
    """Normalize a profile name, falling back to DEFAULT for unknown names."""
    if isinstance(name, ProfileKey):
        return name
    if not name:
        return ProfileKey.DEFAULT
    try:
        return ProfileKey(name.strip().upper())
    except ValueError:
        return ProfileKey.DEFAULT


def resolve_profile(name: Union[str, ProfileKey, None] = None) -> ProcessingProfile:
    """Look up a profile by name; unknown or missing names get DEFAULT."""
    return PROFILE_CATALOG[to_profile_key(name)]


def determine_profile(
    product_name: Optional[str] = None,
    category_name: Optional[str] = None
) -> ProfileKey:
    """
    Pick a profile key from product and category name hints.

    Args:
        product_name: Free-text product name
        category_name: Free-text category name

    Returns:
        The key of the first keyword rule matching the lower-cased
        concatenation of both hints, or DEFAULT.
    """
    text = f"{product_name or ''} {category_name or ''}".lower()

    for key, keywords in KEYWORD_RULES:
        if any(keyword in text for keyword in keywords):
            return key

    return ProfileKey.DEFAULT
