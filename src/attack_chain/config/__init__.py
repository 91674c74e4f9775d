from attack_chain.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
