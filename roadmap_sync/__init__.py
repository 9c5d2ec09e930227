"""
Sync one-way e incremental: ProductBoard (releases/features) -> Notion.

Pensado para ejecutarse como job (cron / CI), no como servicio.
"""

__version__ = "1.0.0"
