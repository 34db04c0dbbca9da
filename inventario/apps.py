from django.apps import AppConfig


class InventarioConfig(AppConfig):
    """
    Inventario de laboratorio: reactivos, equipos y materiales.

    - Bitácora inmutable de movimientos (entradas, salidas, bajas).
    - Ciclos de uso por producto (a lo más uno abierto).
    - Estatus derivado de existencia, uso y caducidad.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "inventario"
    verbose_name = "Inventario de laboratorio"
