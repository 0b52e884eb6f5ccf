"""
categorizer.py
---------------
Keyword-table categorization of subscription merchants.

The table lives in config.yaml under category_keywords. Its order matters:
the first category with a keyword contained in the normalized merchant
name wins. Table updates need no code changes.
"""

from typing import Optional

from config.config_loader import get_subscription_detection_config
from core.normalizer import MerchantNormalizer


class Categorizer:
    """
    Maps merchant names to a subscription category.

    Built once from config. Read-only after init, so safe to share.
    """

    def __init__(self, config: dict | None = None):
        self.config = config if config is not None else get_subscription_detection_config()
        self.normalize = MerchantNormalizer(self.config)
        self.keywords: dict[str, list[str]] = {
            category: [k.lower() for k in keywords]
            for category, keywords in self.config["category_keywords"].items()
        }
        self.generic_terms = [t.lower() for t in self.config["generic_subscription_terms"]]
        self.generic_category = self.config["generic_category"]
        self.default_category = self.config["default_category"]

    def match_known_service(self, normalized_name: str) -> Optional[str]:
        """
        Returns the table key (e.g. "streaming") of the first category with a
        keyword inside an already-normalized name, or None.
        """
        for category, keywords in self.keywords.items():
            if any(keyword in normalized_name for keyword in keywords):
                return category
        return None

    def categorize(self, merchant_name: Optional[str]) -> str:
        """
        Category label for a raw merchant name, e.g. "Streaming".

        Falls back to the generic subscription category when the name only
        carries subscription-ish terms, and to the default category otherwise.
        """
        name = self.normalize(merchant_name)

        category = self.match_known_service(name)
        if category is not None:
            return category[:1].upper() + category[1:]

        if any(term in name for term in self.generic_terms):
            return self.generic_category

        return self.default_category

    def __len__(self) -> int:
        return sum(len(k) for k in self.keywords.values())

    def __repr__(self) -> str:
        return f"Categorizer(categories={list(self.keywords)}, keywords={len(self)})"
