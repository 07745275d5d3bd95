from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Set

from ...models import (
    DRUG_DRUG_FAMILY,
    AlertType,
    InteractionAlert,
    Medication,
    Patient,
    Prescription,
    RuleCorpus,
)
from .base import (
    InteractionCheckStrategy,
    identifier_set,
    iter_rules,
    one_or_many,
    resolve_medications,
    rule_family,
    rule_text,
    severity_level,
)


def pair_matches(
    first: Set[str],
    second: Set[str],
    drug1_classes: List[str],
    drug2_classes: List[str],
) -> bool:
    """True when some (drug1, drug2) class pair covers the two medications in either order."""
    for drug1_class in drug1_classes:
        class1 = drug1_class.casefold()
        for drug2_class in drug2_classes:
            class2 = drug2_class.casefold()
            if (class1 in first and class2 in second) or (class2 in first and class1 in second):
                return True
    return False


class DrugDrugCheckStrategy(InteractionCheckStrategy):
    """Flags pairs of prescribed medications covered by a drug-drug rule.

    Each rule names a class on each side (``drug1``/``drug2``, one class or a
    list). Identifiers are compared case-insensitively and exactly, and the
    order in which the two medications were prescribed does not matter.
    """

    name = "Drug-Drug Interaction Check"

    def check(
        self,
        patient: Optional[Patient],
        prescription: Optional[Prescription],
        rules: Optional[RuleCorpus],
        all_medications: Optional[Sequence[Medication]],
    ) -> List[InteractionAlert]:
        alerts: List[InteractionAlert] = []
        medications = resolve_medications(prescription, all_medications)
        if len(medications) < 2:
            return alerts

        family = rule_family(rules, DRUG_DRUG_FAMILY)
        if not family:
            return alerts

        identifiers = [identifier_set(medication) for medication in medications]
        for i in range(len(medications)):
            for j in range(i + 1, len(medications)):
                for _, rule in iter_rules(family):
                    drug1_classes = one_or_many(rule.get("drug1"))
                    drug2_classes = one_or_many(rule.get("drug2"))
                    if pair_matches(identifiers[i], identifiers[j], drug1_classes, drug2_classes):
                        alerts.append(self._create_alert(medications[i], medications[j], rule))
        return alerts

    def _create_alert(
        self,
        first: Medication,
        second: Medication,
        rule: Mapping[str, Any],
    ) -> InteractionAlert:
        description = rule_text(rule, "description") or ""
        message = f"{first.display_name} and {second.display_name} may interact. {description}".rstrip()
        return InteractionAlert(
            level=severity_level(rule),
            alert_type=AlertType.DRUG_DRUG,
            title="Drug-Drug Interaction",
            message=message,
            recommendation=rule_text(rule, "recommendation"),
            involved=f"{first.display_name} & {second.display_name}",
        )
