"""Concrete adapters for the interfaces in :mod:`ragflow.interfaces`."""
