"""Query classifier - heuristic routing hint for category filtering."""

import logging
import re
from dataclasses import dataclass

from ..models.classification import Confidence, QueryClassification

logger = logging.getLogger(__name__)

# Tie-break order for the primary category.
CATEGORY_PRIORITY = ("encyclopedia", "scripture", "commentary")


@dataclass(frozen=True)
class ClassificationRule:
    """Pattern and the category weights it assigns."""
    query_type: str
    pattern: re.Pattern
    weights: dict[str, float]
    confidence: Confidence


def _rule(
    query_type: str,
    pattern: str,
    encyclopedia: float,
    scripture: float,
    commentary: float,
    confidence: Confidence,
) -> ClassificationRule:
    return ClassificationRule(
        query_type=query_type,
        pattern=re.compile(pattern, re.IGNORECASE),
        weights={
            "encyclopedia": encyclopedia,
            "scripture": scripture,
            "commentary": commentary,
        },
        confidence=confidence,
    )


# Checked in order; the first match wins.
DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    _rule(
        "factual",
        r"^(who|what|where|when|which)\s+(is|are|was|were|did)",
        1.5, 0.5, 0.3, Confidence.HIGH,
    ),
    _rule(
        "dialogue",
        r"what\s+(did|does|has)\s+\w+\s+(say|said|tell|told|speak|spoke)",
        0.3, 1.5, 0.5, Confidence.HIGH,
    ),
    _rule(
        "quote-related",
        r"(quote|dialogue|conversation|verse|spoke|said to|told)",
        0.2, 1.4, 0.4, Confidence.MEDIUM,
    ),
    _rule(
        "explanation",
        r"(explain|why|how|interpret|mean|significance|symbolize)",
        0.5, 0.3, 1.5, Confidence.HIGH,
    ),
    _rule(
        "background",
        r"(background|context|history|family|lineage|descendant)",
        1.3, 0.3, 0.4, Confidence.MEDIUM,
    ),
    _rule(
        "character",
        r"(character|person|warrior|king|queen|sage)",
        1.2, 0.8, 0.3, Confidence.MEDIUM,
    ),
    _rule(
        "analysis",
        r"(analyze|compare|contrast|relationship|symbolism)",
        0.4, 0.3, 1.3, Confidence.MEDIUM,
    ),
)


class QueryClassifier:
    """Ordered regex rules mapping a query to category weights.

    Pure and deterministic. The result is a hint: callers may use it to
    filter by category but must not depend on it.
    """

    def __init__(
        self,
        rules: tuple[ClassificationRule, ...] = DEFAULT_RULES,
        categories: tuple[str, ...] = CATEGORY_PRIORITY,
        enabled: bool = True,
        debug: bool = False,
    ):
        """Initialize classifier.

        Args:
            rules: Rules checked in order.
            categories: Known categories in tie-break priority order.
            enabled: When False every query gets the balanced low result.
            debug: Log rule decisions at INFO level.
        """
        self._rules = rules
        self._categories = categories
        self._enabled = enabled
        self._debug = debug

    def _log(self, message: str) -> None:
        """Log debug message."""
        if self._debug:
            logger.info(f"[classifier] {message}")

    def _balanced(self) -> QueryClassification:
        return QueryClassification(
            primary_category=None,
            weights={c: 1.0 for c in self._categories},
            confidence=Confidence.LOW,
            query_type="general",
        )

    def _primary(self, weights: dict[str, float]) -> str | None:
        best = max(weights.get(c, 0.0) for c in self._categories)
        for category in self._categories:
            if weights.get(category, 0.0) == best:
                return category
        return None

    def classify(self, query: str) -> QueryClassification:
        """Classify a query.

        Args:
            query: User query.

        Returns:
            Classification with weights over all known categories.
            ``primary_category`` is set only for high/medium confidence.
        """
        if not self._enabled:
            return self._balanced()

        text = query.lower().strip()

        for rule in self._rules:
            if not rule.pattern.search(text):
                continue

            weights = {c: rule.weights.get(c, 0.0) for c in self._categories}
            primary = None
            if rule.confidence in (Confidence.HIGH, Confidence.MEDIUM):
                primary = self._primary(weights)

            self._log(
                f"'{query[:50]}' -> {rule.query_type} "
                f"({rule.confidence.value}, primary={primary})"
            )
            return QueryClassification(
                primary_category=primary,
                weights=weights,
                confidence=rule.confidence,
                query_type=rule.query_type,
            )

        self._log(f"'{query[:50]}' -> general (no rule matched)")
        return self._balanced()

    def suggested_categories(self, query: str) -> list[str]:
        """Categories by descending weight, ties in priority order."""
        weights = self.classify(query).weights
        return sorted(
            self._categories,
            key=lambda c: (-weights.get(c, 0.0), self._categories.index(c)),
        )

    def category_filter(
        self, query: str, min_confidence: Confidence = Confidence.HIGH
    ) -> str | None:
        """Primary category if the classification is confident enough."""
        classification = self.classify(query)
        if classification.reaches(min_confidence):
            return classification.primary_category
        return None
