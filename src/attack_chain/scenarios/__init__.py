from attack_chain.scenarios.skirmish import Skirmish, create_skirmish

__all__ = [
    'Skirmish',
    'create_skirmish',
]
