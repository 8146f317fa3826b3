# ==============================================================================
# BIKE ERP - Terminal POS / ERP para tienda de bicicletas y motos
# ==============================================================================
# Capas:
#   models/        -> entidades (dataclasses)
#   repositories/  -> backend REST + almacén local
#   services/      -> lógica de negocio
#   main.py        -> API Flask
# ==============================================================================
