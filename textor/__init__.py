"""Textor: scaffolding for Astro-style projects with a ledger of every generated file."""

__version__ = "1.0.0"
