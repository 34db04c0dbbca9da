from datetime import date, timedelta

from django.conf import settings
from django.utils import timezone

from inventario.models import ESTATUS_MANUALES, EstatusProducto, TipoProducto

DIAS_AVISO_CADUCIDAD = 15


def dias_aviso_caducidad() -> int:
    return getattr(settings, "INVENTARIO_DIAS_AVISO_CADUCIDAD", DIAS_AVISO_CADUCIDAD)


def resolver_estatus(
    *,
    tipo: str,
    existencia: int,
    stock_minimo: int,
    caducidad: date | None = None,
    estatus_actual: str | None = None,
    hoy: date | None = None,
    dias_aviso: int = DIAS_AVISO_CADUCIDAD,
) -> str:
    """
    Calcula el estatus de un producto a partir de sus datos observables.

    Prioridad:
        1. Reactivo con caducidad < hoy              → caducado
        2. Reactivo con caducidad <= hoy + dias_aviso → próximo a caducar
        3. existencia <= 0                           → sin stock
        4. No equipo y existencia <= stock_minimo    → bajo stock
        5. En otro caso                              → disponible

    'En uso' y 'Baja' son manuales: si llegan como estatus_actual se
    devuelven sin cambios. Función pura, sin acceso a BD.
    """
    if estatus_actual is not None and str(estatus_actual) in ESTATUS_MANUALES:
        return estatus_actual

    if hoy is None:
        hoy = timezone.localdate()

    if tipo == TipoProducto.REACTIVO and caducidad is not None:
        if caducidad < hoy:
            return EstatusProducto.CADUCADO
        if caducidad <= hoy + timedelta(days=dias_aviso):
            return EstatusProducto.PROXIMO_A_CADUCAR

    if existencia <= 0:
        return EstatusProducto.SIN_STOCK

    if tipo != TipoProducto.EQUIPO and existencia <= stock_minimo:
        return EstatusProducto.BAJO_STOCK

    return EstatusProducto.DISPONIBLE


def resolver_estatus_producto(producto, *, hoy: date | None = None, respetar_manual: bool = True) -> str:
    """
    Aplica resolver_estatus sobre una instancia de Producto.
    Con respetar_manual=False se ignora el estatus actual (ej: al cerrar un uso).
    """
    return resolver_estatus(
        tipo=producto.tipo,
        existencia=producto.existencia_actual,
        stock_minimo=producto.stock_minimo,
        caducidad=producto.caducidad,
        estatus_actual=producto.estatus if respetar_manual else None,
        hoy=hoy,
        dias_aviso=dias_aviso_caducidad(),
    )
