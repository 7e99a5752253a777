# ingest/tags.py
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class TagRule:
    label: str
    triggers: Tuple[str, ...]
    exclusions: Tuple[str, ...] = field(default_factory=tuple)

    def matches(self, text: str) -> bool:
        if not any(t in text for t in self.triggers):
            return False
        return not any(e in text for e in self.exclusions)


# Order here is the order tags are presented in.
TAG_RULES = (
    TagRule(
        "Recycled",
        ("recycled", "recycling", "reclaimed", "post-consumer"),
    ),
    TagRule(
        "Upcycled",
        ("upcycled", "upcycling", "repurposed", "made from offcuts"),
    ),
    TagRule(
        "Handmade",
        (
            "handmade",
            "hand made",
            "hand-made",
            "handcrafted",
            "hand crafted",
            "hand-crafted",
            "hand knitted",
            "hand-knitted",
            "artisan",
        ),
    ),
    TagRule(
        "Organic",
        ("organic", "bio-cotton", "gots certified"),
        exclusions=(
            "organic growth",
            "organic shape",
            "organic shapes",
            "organic form",
            "organic design",
            "organic traffic",
            "organic reach",
            "organic search",
            "organic chemistry",
        ),
    ),
)

TAG_LABELS = tuple(r.label for r in TAG_RULES)


def classify_tags(text) -> List[str]:
    """
    Return the sustainability labels evidenced by free text.

    Each rule is checked on its own against the lower-cased text, so several
    labels can apply at once. An empty list is a normal result.
    """
    if not text:
        return []
    lowered = text.lower()
    return [r.label for r in TAG_RULES if r.matches(lowered)]
