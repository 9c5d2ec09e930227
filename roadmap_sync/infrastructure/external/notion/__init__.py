"""
Cliente de Notion (API 2022-06-28) y codec de propiedades.

Notion es el destino: dos bases (Releases y Features) enlazadas por una
relacion de dos vias.
"""
