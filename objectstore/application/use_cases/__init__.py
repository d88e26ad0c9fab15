"""Use cases."""

from objectstore.application.use_cases.model import Model

__all__ = ["Model"]
