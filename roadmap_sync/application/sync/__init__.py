"""
Motor de reconciliacion incremental ProductBoard -> Notion.

Objetivos de diseño:
- Idempotencia: N corridas sin cambios en la fuente -> 0 creates, 0 updates.
- Sin duplicados: el ID externo guardado en Notion es la unica clave de correlacion.
- Relaciones de dos vias: Feature.Release y Release.Features quedan consistentes.
- Un registro con error nunca bloquea al resto.
"""
