from attack_chain.utils.logging import setup_logging

__all__ = ["setup_logging"]
