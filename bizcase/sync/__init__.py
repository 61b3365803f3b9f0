from .sourced import CrossToolService

__all__ = ["CrossToolService"]
