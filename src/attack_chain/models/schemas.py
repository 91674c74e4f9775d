from enum import Enum
# Enum Classes
class ActionCardMode(str, Enum):    # How an action card resolves.
    ATTACK_CHAIN = "attackChain"        # Roll vs two ACs, then damage -> status -> transformation
    SAVED_DAMAGE = "savedDamage"        # Fixed formula, no roll, every target
class RollType(str, Enum):          # Roll behaviour of an embedded item.
    ROLL = "roll"
    FLAT = "flat"
    NONE = "none"                       # Automatic two successes, not "no roll"
class EffectCondition(str, Enum):   # When damage/status/transformation applies to a target.
    NEVER = "never"
    ONE_SUCCESS = "oneSuccess"
    TWO_SUCCESSES = "twoSuccesses"
    ROLL_VALUE = "rollValue"            # Attack roll total >= threshold
class DamageType(str, Enum):
    DAMAGE = "damage"
    HEAL = "heal"
class ItemKind(str, Enum):          # Item document types the engine knows about.
    COMBAT_POWER = "combatPower"
    GEAR = "gear"
    FEATURE = "feature"
    STATUS = "status"
    TRANSFORMATION = "transformation"
    ACTION_CARD = "actionCard"
class Stat(str, Enum):              # Abilities with an AC-equivalent total.
    ACRO = "acro"
    PHYS = "phys"
    FORT = "fort"
    WILL = "will"
    WITS = "wits"

LEGAL_ROLL_TYPES = frozenset(t.value for t in RollType)
EMBEDDABLE_ITEM_KINDS = (ItemKind.COMBAT_POWER, ItemKind.GEAR, ItemKind.FEATURE)
EMBEDDABLE_EFFECT_KINDS = (ItemKind.STATUS, ItemKind.GEAR)
DEFAULT_THRESHOLD = 15
DEFAULT_AC = 11
FLAG_SCOPE = "attack_chain"             # Namespace for item/actor flags written by the engine
