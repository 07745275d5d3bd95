"""
Interaction checking: one strategy per rule family, run concurrently by the engine.

Registration order (and therefore alert order) is:
1. AllergyCheckStrategy        - drugAllergyInteractions
2. DrugDrugCheckStrategy       - drugDrugInteractions
3. DrugConditionCheckStrategy  - drugConditionInteractions
"""

from .allergy import AllergyCheckStrategy
from .base import InteractionCheckStrategy, one_or_many, resolve_medications
from .drug_condition import DrugConditionCheckStrategy
from .drug_drug import DrugDrugCheckStrategy
from .engine import InteractionEngine, default_strategies

__all__ = [
    "AllergyCheckStrategy",
    "DrugConditionCheckStrategy",
    "DrugDrugCheckStrategy",
    "InteractionCheckStrategy",
    "InteractionEngine",
    "default_strategies",
    "one_or_many",
    "resolve_medications",
]
