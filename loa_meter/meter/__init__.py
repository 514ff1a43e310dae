from .damage import DamageProcessor, decode_damage_modifier
from .encounter_parser import EncounterParser
from .finalize import finalize_encounter, finalize_encounters
from .lifecycle import ResetState, reset, soft_reset, split_encounter

__all__ = [
    "DamageProcessor",
    "EncounterParser",
    "ResetState",
    "decode_damage_modifier",
    "finalize_encounter",
    "finalize_encounters",
    "reset",
    "soft_reset",
    "split_encounter",
]
