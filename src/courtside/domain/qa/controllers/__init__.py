from .qa import QaController

__all__ = ("QaController",)
