from . import diary

__all__ = ["diary"]
