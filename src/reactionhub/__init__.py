"""ReactionHub — polymorphic reaction ledger and cross-entity resolver."""

__version__ = "0.1.0"
