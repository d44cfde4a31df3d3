"""Access adapters: pages, operations and menus on top of the policy evaluator."""
from __future__ import annotations

from cms_access_control.adapters.menus import MenuFilter
from cms_access_control.adapters.operations import OperationAccess
from cms_access_control.adapters.pages import PageAccess

__all__ = [
    "MenuFilter",
    "OperationAccess",
    "PageAccess",
]
