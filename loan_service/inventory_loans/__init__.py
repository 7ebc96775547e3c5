"""Motor de inventario y préstamos: catálogo, bienes, préstamos y lista negra."""

__version__ = "1.0.0"
