"""vipshop-ops: schema-driven import and sales statistics for Vipshop operation workbooks."""

__version__ = "0.1.0"
