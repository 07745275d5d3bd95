from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from ...models import (
    DRUG_ALLERGY_FAMILY,
    AlertLevel,
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
    label_matches_keywords,
    matches_any_class,
    one_or_many,
    resolve_medications,
    rule_family,
    rule_text,
)


class AllergyCheckStrategy(InteractionCheckStrategy):
    """Flags prescribed medications whose class relates to a recorded allergy.

    A rule matches an allergy when one of its ``allergyKeywords`` occurs in the
    allergy label (case-insensitive), and matches a medication when one of the
    medication's interaction identifiers is listed in ``medicationClasses``.
    Every matching (medication, allergy, rule) produces its own alert.
    """

    name = "Drug-Allergy Interaction Check"

    def check(
        self,
        patient: Optional[Patient],
        prescription: Optional[Prescription],
        rules: Optional[RuleCorpus],
        all_medications: Optional[Sequence[Medication]],
    ) -> List[InteractionAlert]:
        alerts: List[InteractionAlert] = []
        if patient is None or not patient.allergies:
            return alerts

        family = rule_family(rules, DRUG_ALLERGY_FAMILY)
        if not family:
            return alerts

        allergies = [allergy for allergy in patient.allergies if isinstance(allergy, str)]
        for medication in resolve_medications(prescription, all_medications):
            identifiers = identifier_set(medication)
            for allergy in allergies:
                for _, rule in iter_rules(family):
                    keywords = one_or_many(rule.get("allergyKeywords"))
                    if not label_matches_keywords(allergy, keywords):
                        continue
                    classes = one_or_many(rule.get("medicationClasses"))
                    if matches_any_class(identifiers, classes):
                        alerts.append(self._create_alert(medication, allergy, rule))
        return alerts

    def _create_alert(
        self,
        medication: Medication,
        allergy: str,
        rule: Mapping[str, Any],
    ) -> InteractionAlert:
        message = (
            f"Patient has a known allergy to '{allergy}'. The prescribed medication, "
            f"{medication.display_name}, is in a class of drugs related to this allergy."
        )
        return InteractionAlert(
            level=AlertLevel.CRITICAL,
            alert_type=AlertType.DRUG_ALLERGY,
            title="Potential Allergic Reaction",
            message=message,
            recommendation=rule_text(rule, "recommendation"),
            involved=medication.display_name,
            trigger=allergy,
        )
