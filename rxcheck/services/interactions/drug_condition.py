from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from ...models import (
    DRUG_CONDITION_FAMILY,
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
    severity_level,
)


class DrugConditionCheckStrategy(InteractionCheckStrategy):
    """Flags medications that are risky for one of the patient's chronic conditions.

    Mirrors the allergy check with ``conditionKeywords`` in place of
    ``allergyKeywords``. Alerts are WARNING unless the rule's ``severity`` is
    ``CRITICAL``.
    """

    name = "Drug-Condition Interaction Check"

    def check(
        self,
        patient: Optional[Patient],
        prescription: Optional[Prescription],
        rules: Optional[RuleCorpus],
        all_medications: Optional[Sequence[Medication]],
    ) -> List[InteractionAlert]:
        alerts: List[InteractionAlert] = []
        if patient is None or not patient.chronic_conditions:
            return alerts

        family = rule_family(rules, DRUG_CONDITION_FAMILY)
        if not family:
            return alerts

        conditions = [c for c in patient.chronic_conditions if isinstance(c, str)]
        for medication in resolve_medications(prescription, all_medications):
            identifiers = identifier_set(medication)
            for condition in conditions:
                for _, rule in iter_rules(family):
                    keywords = one_or_many(rule.get("conditionKeywords"))
                    if not label_matches_keywords(condition, keywords):
                        continue
                    classes = one_or_many(rule.get("medicationClasses"))
                    if matches_any_class(identifiers, classes):
                        alerts.append(self._create_alert(medication, condition, rule))
        return alerts

    def _create_alert(
        self,
        medication: Medication,
        condition: str,
        rule: Mapping[str, Any],
    ) -> InteractionAlert:
        description = rule_text(rule, "description") or ""
        message = (
            f"{medication.display_name} may be unsafe for a patient with '{condition}'. "
            f"{description}"
        ).rstrip()
        return InteractionAlert(
            level=severity_level(rule),
            alert_type=AlertType.DRUG_CONDITION,
            title="Drug-Condition Interaction",
            message=message,
            recommendation=rule_text(rule, "recommendation"),
            involved=f"{medication.display_name} & {condition}",
        )
