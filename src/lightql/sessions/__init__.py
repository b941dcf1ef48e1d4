"""Entity sessions for lightql."""

from __future__ import annotations

__all__ = ["Facade", "TableFacade"]

from .facade import Facade, TableFacade
