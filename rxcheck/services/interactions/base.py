"""Strategy contract and rule-reading helpers shared by all interaction checks.

Rule corpora are loosely typed JSON: a family may be missing, a rule may not be
a mapping, and a matching field may hold a single string or a list of strings.
The helpers here turn every such anomaly into "no match" so that strategies
never raise on bad data.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from ...models import AlertLevel, InteractionAlert, Medication, Patient, Prescription, RuleCorpus


def one_or_many(value: Any) -> List[str]:
    """Normalize a rule field holding one string or a list of strings."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return []


def rule_family(rules: Optional[RuleCorpus], key: str) -> Mapping[str, Any]:
    """Return one rule family, or an empty mapping when it is absent or malformed."""
    if not isinstance(rules, Mapping):
        return {}
    family = rules.get(key)
    if not isinstance(family, Mapping):
        return {}
    return family


def iter_rules(family: Mapping[str, Any]) -> Iterator[Tuple[str, Mapping[str, Any]]]:
    """Yield ``(rule_id, rule)`` for every well-formed rule, in corpus order."""
    for rule_id, rule in family.items():
        if isinstance(rule, Mapping):
            yield rule_id, rule


def rule_text(rule: Mapping[str, Any], field: str) -> Optional[str]:
    value = rule.get(field)
    return value if isinstance(value, str) else None


def resolve_medications(
    prescription: Optional[Prescription],
    all_medications: Optional[Sequence[Medication]],
) -> List[Medication]:
    """Resolve prescribed drugs to formulary records, preserving prescription order.

    References that match no medication are dropped. When several medications
    share an id the first one wins.
    """
    if prescription is None or not all_medications:
        return []
    index: Dict[str, Medication] = {}
    for medication in all_medications:
        index.setdefault(medication.medication_id, medication)
    resolved = []
    for drug in prescription.prescribed_drugs or []:
        medication = index.get(drug.medication_id)
        if medication is not None:
            resolved.append(medication)
    return resolved


def severity_level(rule: Mapping[str, Any]) -> AlertLevel:
    """CRITICAL only when the rule says so explicitly; anything else is a WARNING."""
    severity = rule_text(rule, "severity")
    if severity is not None and severity.casefold() == "critical":
        return AlertLevel.CRITICAL
    return AlertLevel.WARNING


def identifier_set(medication: Medication) -> Set[str]:
    return {identifier.casefold() for identifier in medication.interaction_identifiers}


def matches_any_class(identifiers: Set[str], classes: List[str]) -> bool:
    return any(cls.casefold() in identifiers for cls in classes)


def label_matches_keywords(label: str, keywords: List[str]) -> bool:
    """Case-insensitive substring match of any non-empty keyword within ``label``."""
    folded = label.casefold()
    return any(keyword and keyword.casefold() in folded for keyword in keywords)


class InteractionCheckStrategy(ABC):
    """One rule family and the algorithm that matches it.

    Implementations must be pure: they read their inputs, never mutate them,
    keep no state between calls, and return a new list on every call. Missing
    or malformed rule data means "no match", never an exception.
    """

    # Human-readable name for logs and reports
    name: str = "Interaction Check"

    @abstractmethod
    def check(
        self,
        patient: Optional[Patient],
        prescription: Optional[Prescription],
        rules: Optional[RuleCorpus],
        all_medications: Optional[Sequence[Medication]],
    ) -> List[InteractionAlert]:
        """Return the alerts this strategy raises for the given inputs."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
