"""
Coordinador de movimientos de inventario.

Toda operación que cambia existencia o uso de un producto pasa por
`_transaccion_producto`: bloquea la fila del producto (SELECT ... FOR UPDATE),
valida contra ese estado bloqueado, modifica producto / bitácora / ciclo de uso
y confirma. Cualquier error revierte la transacción completa.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from functools import wraps

from django.conf import settings
from django.db import DatabaseError, OperationalError, connection, transaction
from django.utils import timezone

from inventario.exceptions import (
    CantidadInvalidaError,
    ErrorInternoInventario,
    MovimientoInventarioError,
    ProductoDadoDeBajaError,
    ProductoNoEncontradoError,
    RecursoOcupadoError,
    TransicionInvalidaError,
)
from inventario.models import (
    EstatusProducto,
    MotivoSalida,
    Movimiento,
    Producto,
    TipoMovimiento,
    UsoProducto,
)
from inventario.services.estatus import resolver_estatus_producto
from inventario.services.transiciones import (
    EFECTO_USO_ABRIR,
    EFECTO_USO_CERRAR,
    EstadoProducto,
    obtener_regla,
    validar_estado,
    validar_parametros,
)

logger = logging.getLogger(__name__)

# SQLSTATE de PostgreSQL para lock_timeout / NOWAIT
LOCK_NOT_AVAILABLE = "55P03"


@dataclass(frozen=True)
class ProductoSnapshot:
    id: int
    tipo: str
    existencia_actual: int
    stock_minimo: int
    estatus: str
    caducidad: date | None

    @classmethod
    def desde_producto(cls, producto: Producto) -> "ProductoSnapshot":
        return cls(
            id=producto.id,
            tipo=producto.tipo,
            existencia_actual=producto.existencia_actual,
            stock_minimo=producto.stock_minimo,
            estatus=str(producto.estatus),
            caducidad=producto.caducidad,
        )


@dataclass(frozen=True)
class ResultadoMovimiento:
    movimiento_id: int
    producto: ProductoSnapshot


def _registrar_rechazos(operacion: str):
    """Deja constancia en el log de cada solicitud rechazada, con su código."""

    def decorador(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except MovimientoInventarioError as exc:
                logger.info(
                    "%s rechazada (producto=%s): %s [%s] - %s",
                    operacion,
                    kwargs.get("producto_id"),
                    exc.codigo,
                    exc.categoria,
                    exc.mensaje,
                )
                raise

        return wrapper

    return decorador


def _es_espera_de_bloqueo(exc: OperationalError) -> bool:
    causa = exc.__cause__
    codigo = getattr(causa, "sqlstate", None) or getattr(causa, "pgcode", None)
    if codigo == LOCK_NOT_AVAILABLE:
        return True
    # SQLite bloquea la base completa en lugar de la fila
    return "database is locked" in str(exc)


def _fijar_lock_timeout() -> None:
    if connection.vendor != "postgresql":
        return
    timeout_ms = getattr(settings, "INVENTARIO_LOCK_TIMEOUT_MS", 5000)
    with connection.cursor() as cursor:
        # is_local=true: solo para la transacción en curso
        cursor.execute("SELECT set_config('lock_timeout', %s, true)", [f"{timeout_ms}ms"])


def _bloquear_producto(producto_id) -> Producto:
    try:
        _fijar_lock_timeout()
        return Producto.objects.select_for_update().get(pk=producto_id)
    except Producto.DoesNotExist:
        raise ProductoNoEncontradoError(f"Producto {producto_id} no encontrado.") from None
    except OperationalError as exc:
        if _es_espera_de_bloqueo(exc):
            raise RecursoOcupadoError() from exc
        raise


@contextmanager
def _transaccion_producto(producto_id, operacion: str):
    """
    Abre una transacción, bloquea el producto y lo entrega al bloque.
    El bloqueo se libera al confirmar o revertir.
    """
    try:
        with transaction.atomic():
            yield _bloquear_producto(producto_id)
    except DatabaseError as exc:
        # La espera también puede vencer al abrir la transacción o al escribir
        if isinstance(exc, OperationalError) and _es_espera_de_bloqueo(exc):
            logger.warning("Producto %s ocupado durante %s", producto_id, operacion)
            raise RecursoOcupadoError() from exc
        logger.exception(
            "Error de base de datos en %s (producto=%s); transacción revertida",
            operacion,
            producto_id,
        )
        raise ErrorInternoInventario() from exc


def _exigir_usuario(usuario) -> None:
    if usuario is None or not getattr(usuario, "pk", None):
        raise ValueError("Todo movimiento requiere un usuario autenticado.")


@_registrar_rechazos("Entrada")
def registrar_entrada(
    *,
    producto_id,
    usuario,
    cantidad: int,
    descripcion: str = "",
) -> ResultadoMovimiento:
    """
    Registra una ENTRADA: suma `cantidad` a la existencia y recalcula el
    estatus (una entrada nunca pone 'En uso' ni 'Baja').
    """
    _exigir_usuario(usuario)
    if isinstance(cantidad, bool) or not isinstance(cantidad, int) or cantidad <= 0:
        raise CantidadInvalidaError("La cantidad de una entrada debe ser un entero mayor a 0.")

    with _transaccion_producto(producto_id, "entrada") as producto:
        if producto.estatus == EstatusProducto.BAJA:
            raise ProductoDadoDeBajaError(
                "No se pueden registrar entradas de un producto dado de baja."
            )

        producto.existencia_actual += cantidad
        producto.estatus = resolver_estatus_producto(producto)
        producto.save(update_fields=["existencia_actual", "estatus", "updated_at"])

        movimiento = Movimiento.objects.create(
            producto=producto,
            usuario=usuario,
            tipo=TipoMovimiento.ENTRADA,
            cantidad=cantidad,
            descripcion_adicional=(descripcion or "").strip(),
        )

    logger.info(
        "Entrada registrada: producto=%s cantidad=%s existencia=%s estatus=%s movimiento=%s",
        producto.id,
        cantidad,
        producto.existencia_actual,
        producto.estatus,
        movimiento.id,
    )
    return ResultadoMovimiento(
        movimiento_id=movimiento.id,
        producto=ProductoSnapshot.desde_producto(producto),
    )


def _aplicar_salida(
    *,
    producto_id,
    usuario,
    motivo: str,
    cantidad: int | None,
    descripcion: str,
) -> ResultadoMovimiento:
    regla = obtener_regla(motivo)
    cantidad = validar_parametros(regla, cantidad=cantidad, descripcion=descripcion)

    with _transaccion_producto(producto_id, f"salida {motivo}") as producto:
        # El bloqueo del producto protege también sus ciclos de uso
        uso = producto.uso_abierto
        estado = EstadoProducto(
            estatus=producto.estatus,
            existencia=producto.existencia_actual,
            tiene_uso_abierto=uso is not None,
        )
        validar_estado(regla, estado, cantidad)

        aplicada = regla.cantidad_aplicada(estado, cantidad)
        ahora = timezone.now()

        movimiento = Movimiento.objects.create(
            producto=producto,
            usuario=usuario,
            tipo=TipoMovimiento.SALIDA,
            motivo=regla.motivo,
            cantidad=aplicada,
            descripcion_adicional=(descripcion or "").strip(),
            fecha_movimiento=ahora,
        )

        if regla.efecto_uso == EFECTO_USO_ABRIR:
            UsoProducto.objects.create(
                producto=producto,
                usuario=usuario,
                fecha_inicio=ahora,
                movimiento_inicio=movimiento,
            )
        elif regla.efecto_uso == EFECTO_USO_CERRAR:
            uso.fecha_fin = ahora
            uso.movimiento_fin = movimiento
            uso.save(update_fields=["fecha_fin", "movimiento_fin"])

        producto.existencia_actual -= aplicada
        if regla.estatus_resultante is not None:
            producto.estatus = regla.estatus_resultante
        else:
            producto.estatus = resolver_estatus_producto(
                producto,
                respetar_manual=not regla.libera_estatus_manual,
            )
        producto.save(update_fields=["existencia_actual", "estatus", "updated_at"])

    logger.info(
        "Salida '%s' registrada: producto=%s cantidad=%s existencia=%s estatus=%s movimiento=%s",
        regla.motivo,
        producto.id,
        aplicada,
        producto.existencia_actual,
        producto.estatus,
        movimiento.id,
    )
    return ResultadoMovimiento(
        movimiento_id=movimiento.id,
        producto=ProductoSnapshot.desde_producto(producto),
    )


@_registrar_rechazos("Salida")
def registrar_salida(
    *,
    producto_id,
    usuario,
    motivo: str,
    cantidad: int | None = None,
    descripcion: str = "",
) -> ResultadoMovimiento:
    """
    Registra una SALIDA por motivo:

    - iniciar_uso: abre un ciclo de uso; el producto pasa a 'En uso'.
    - finalizar_uso: descuenta `cantidad` (por defecto 1, admite 0),
      cierra el ciclo abierto y recalcula el estatus.
    - incidencia: descuenta `cantidad` (por defecto 1); descripción obligatoria.

    Las bajas tienen su propia operación (registrar_baja).
    """
    _exigir_usuario(usuario)
    if motivo == MotivoSalida.BAJA:
        raise TransicionInvalidaError("Las bajas se registran con la operación de baja.")
    return _aplicar_salida(
        producto_id=producto_id,
        usuario=usuario,
        motivo=motivo,
        cantidad=cantidad,
        descripcion=descripcion,
    )


@_registrar_rechazos("Baja")
def registrar_baja(*, producto_id, usuario, descripcion: str) -> ResultadoMovimiento:
    """
    Da de baja el lote completo: la existencia pasa a 0, el estatus a 'Baja'
    (terminal) y la bitácora registra la cantidad que había antes de la baja.
    """
    _exigir_usuario(usuario)
    return _aplicar_salida(
        producto_id=producto_id,
        usuario=usuario,
        motivo=MotivoSalida.BAJA.value,
        cantidad=None,
        descripcion=descripcion,
    )
