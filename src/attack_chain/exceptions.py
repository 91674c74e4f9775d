# ============================================================
# ACTION CARD EXCEPTIONS
# ============================================================

class ActionCardError(Exception):
    """Base exception for action card execution errors"""
    pass


class UnsupportedItemTypeError(ActionCardError):
    """Item kind cannot be embedded as the card's rollable item"""
    pass


class UnsupportedEffectTypeError(ActionCardError):
    """Item kind cannot be embedded as a status effect"""
    pass


class NoEmbeddedItemError(ActionCardError):
    """Attack chain requested but the card holds no embedded item"""
    pass


class UnknownModeError(ActionCardError):
    """Action card mode is neither attackChain nor savedDamage"""
    pass


class ChainsDisabledError(ActionCardError):
    """Attack chains are switched off in settings"""
    pass


class BypassNotSupportedError(ActionCardError):
    """Item kind has no programmatic (popup-less) execution path"""
    pass


class RollCaptureTimeout(ActionCardError):
    """No roll message arrived before the capture timer fired"""
    pass
