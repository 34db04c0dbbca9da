"""
Errores de dominio del inventario y su traducción a respuestas HTTP.

Cada error lleva un `codigo` estable que consume el cliente móvil para mostrar
el motivo concreto del rechazo, una `categoria` y si es seguro reintentar.
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

CATEGORIA_VALIDACION = "validacion"
CATEGORIA_CONSISTENCIA = "consistencia"
CATEGORIA_CONCURRENCIA = "concurrencia"
CATEGORIA_NO_ENCONTRADO = "no_encontrado"
CATEGORIA_INTERNO = "interno"


class MovimientoInventarioError(Exception):
    """Errores de dominio al registrar movimientos de inventario."""

    codigo = "InventoryError"
    categoria = CATEGORIA_INTERNO
    status_http = status.HTTP_500_INTERNAL_SERVER_ERROR
    reintentable = False
    mensaje_default = "Error de inventario."

    def __init__(self, mensaje: str | None = None):
        self.mensaje = mensaje or self.mensaje_default
        super().__init__(self.mensaje)


# --- Errores de validación (error del solicitante) ---

class CantidadInvalidaError(MovimientoInventarioError):
    codigo = "InvalidQuantity"
    categoria = CATEGORIA_VALIDACION
    status_http = status.HTTP_400_BAD_REQUEST
    mensaje_default = "La cantidad debe ser un entero mayor a 0."


class DescripcionRequeridaError(MovimientoInventarioError):
    codigo = "MissingNote"
    categoria = CATEGORIA_VALIDACION
    status_http = status.HTTP_400_BAD_REQUEST
    mensaje_default = "La descripción es obligatoria para este movimiento."


class TransicionInvalidaError(MovimientoInventarioError):
    codigo = "InvalidTransition"
    categoria = CATEGORIA_VALIDACION
    status_http = status.HTTP_400_BAD_REQUEST
    mensaje_default = "El movimiento no es válido para el estatus actual del producto."


class SinUsoActivoError(MovimientoInventarioError):
    codigo = "NoOpenUsageCycle"
    categoria = CATEGORIA_VALIDACION
    status_http = status.HTTP_400_BAD_REQUEST
    mensaje_default = "No se encontró un ciclo de uso activo para finalizar."


# --- Errores de consistencia (el estado cambió bajo el bloqueo) ---

class StockInsuficienteError(MovimientoInventarioError):
    codigo = "InsufficientStock"
    categoria = CATEGORIA_CONSISTENCIA
    status_http = status.HTTP_409_CONFLICT
    mensaje_default = "Stock insuficiente."


class ProductoDadoDeBajaError(MovimientoInventarioError):
    codigo = "ProductAlreadyWrittenOff"
    categoria = CATEGORIA_CONSISTENCIA
    status_http = status.HTTP_409_CONFLICT
    mensaje_default = "El producto ya está dado de baja."


# --- Concurrencia ---

class RecursoOcupadoError(MovimientoInventarioError):
    codigo = "Busy"
    categoria = CATEGORIA_CONCURRENCIA
    status_http = status.HTTP_503_SERVICE_UNAVAILABLE
    reintentable = True
    mensaje_default = "El producto está siendo modificado por otra operación. Intente de nuevo."


# --- No encontrado ---

class ProductoNoEncontradoError(MovimientoInventarioError):
    codigo = "ProductNotFound"
    categoria = CATEGORIA_NO_ENCONTRADO
    status_http = status.HTTP_404_NOT_FOUND
    mensaje_default = "Producto no encontrado."


# --- Interno ---

class ErrorInternoInventario(MovimientoInventarioError):
    codigo = "InternalError"
    categoria = CATEGORIA_INTERNO
    status_http = status.HTTP_500_INTERNAL_SERVER_ERROR
    mensaje_default = "Error interno al registrar el movimiento. No se aplicó ningún cambio."


class MovimientoInmutableError(Exception):
    """Intento de modificar o borrar un registro de la bitácora."""
    pass


def manejador_excepciones(exc, context):
    """
    Exception handler de DRF: traduce los errores de dominio a
    {"error": ..., "codigo": ..., "categoria": ...} con su código HTTP. El resto lo
    resuelve el handler por defecto de DRF.
    """
    if isinstance(exc, MovimientoInventarioError):
        headers = {"Retry-After": "1"} if exc.reintentable else None
        return Response(
            {"error": exc.mensaje, "codigo": exc.codigo, "categoria": exc.categoria},
            status=exc.status_http,
            headers=headers,
        )
    return exception_handler(exc, context)
