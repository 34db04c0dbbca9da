import logging
from datetime import date, timedelta

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from inventario.exceptions import CantidadInvalidaError
from inventario.models import (
    EstatusProducto,
    Movimiento,
    Prioridad,
    Producto,
    TipoMovimiento,
    TipoProducto,
)
from inventario.services.estatus import dias_aviso_caducidad, resolver_estatus_producto

logger = logging.getLogger(__name__)

DESCRIPCION_REGISTRO_INICIAL = "Registro inicial de lote en inventario"


def _validar_entero_no_negativo(valor, campo: str) -> None:
    if isinstance(valor, bool) or not isinstance(valor, int) or valor < 0:
        raise CantidadInvalidaError(f"El campo '{campo}' debe ser un entero mayor o igual a 0.")


@transaction.atomic
def registrar_producto(
    *,
    usuario,
    nombre: str,
    tipo: str,
    existencia_inicial: int = 0,
    stock_minimo: int = 0,
    marca: str = "",
    lote: str = "",
    prioridad: str = Prioridad.MEDIA,
    caducidad: date | None = None,
    presentacion: str = "",
) -> Producto:
    """
    Da de alta un lote en el inventario.

    - El estatus inicial lo calcula el resolver (nunca 'En uso' ni 'Baja').
    - Si la existencia inicial es > 0 se registra una ENTRADA en la bitácora
      con la descripción de registro inicial, dentro de la misma transacción.
    """
    _validar_entero_no_negativo(existencia_inicial, "existencia_inicial")
    _validar_entero_no_negativo(stock_minimo, "stock_minimo")

    producto = Producto(
        nombre=nombre,
        tipo=tipo,
        marca=marca,
        lote=lote,
        prioridad=prioridad,
        existencia_actual=existencia_inicial,
        stock_minimo=stock_minimo,
        caducidad=caducidad,
        presentacion=presentacion,
    )
    producto.full_clean()
    producto.estatus = resolver_estatus_producto(producto, respetar_manual=False)
    producto.save()

    if existencia_inicial > 0:
        Movimiento.objects.create(
            producto=producto,
            usuario=usuario,
            tipo=TipoMovimiento.ENTRADA,
            cantidad=existencia_inicial,
            descripcion_adicional=DESCRIPCION_REGISTRO_INICIAL,
        )

    logger.info(
        "Producto registrado: id=%s nombre=%r tipo=%s existencia=%s estatus=%s",
        producto.id,
        producto.nombre,
        producto.tipo,
        producto.existencia_actual,
        producto.estatus,
    )
    return producto


def obtener_productos_por_caducar(*, dias: int | None = None):
    """
    Reactivos cuya caducidad cae entre hoy y hoy+días (por defecto la
    ventana de aviso configurada). Excluye los dados de baja y los ya caducados.
    """
    if dias is None:
        dias = dias_aviso_caducidad()
    hoy = timezone.localdate()
    limite = hoy + timedelta(days=dias)

    return (
        Producto.objects.filter(
            tipo=TipoProducto.REACTIVO,
            caducidad__isnull=False,
            caducidad__gte=hoy,
            caducidad__lte=limite,
        )
        .exclude(estatus=EstatusProducto.BAJA)
        .order_by("caducidad", "id")
    )


def obtener_productos_bajo_stock():
    """
    Productos (no equipos) con existencia menor o igual a su stock mínimo.
    """
    return (
        Producto.objects.exclude(tipo=TipoProducto.EQUIPO)
        .exclude(estatus=EstatusProducto.BAJA)
        .filter(existencia_actual__lte=F("stock_minimo"))
        .order_by("existencia_actual", "id")
    )
