from .rollback import RollbackManager

__all__ = ["RollbackManager"]
