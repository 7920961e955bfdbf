"""File-backed kanban boards that reference work items without owning them."""

__version__ = "0.1.0"
