"""
Cliente de lectura de ProductBoard (API v1).

Solo lectura: releases, assignments feature->release y detalle de features.
"""
