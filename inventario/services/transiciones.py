"""
Tabla de transiciones de las salidas de inventario.

Cada motivo de salida queda descrito por una ReglaSalida:
(precondición, efecto en existencia, efecto en ciclo de uso, estatus resultante).
El coordinador de movimientos solo interpreta esta tabla; no hay lógica
por motivo fuera de aquí.
"""

from dataclasses import dataclass
from typing import Callable

from inventario.exceptions import (
    CantidadInvalidaError,
    DescripcionRequeridaError,
    ProductoDadoDeBajaError,
    SinUsoActivoError,
    StockInsuficienteError,
    TransicionInvalidaError,
)
from inventario.models import EstatusProducto, MotivoSalida

EFECTO_STOCK_NINGUNO = "ninguno"
EFECTO_STOCK_RESTAR = "restar"
EFECTO_STOCK_VACIAR = "vaciar"

EFECTO_USO_NINGUNO = "ninguno"
EFECTO_USO_ABRIR = "abrir"
EFECTO_USO_CERRAR = "cerrar"


@dataclass(frozen=True)
class EstadoProducto:
    """Foto del producto bloqueado sobre la que se evalúan las precondiciones."""
    estatus: str
    existencia: int
    tiene_uso_abierto: bool


@dataclass(frozen=True)
class ReglaSalida:
    motivo: str
    precondicion: Callable[[EstadoProducto, int | None], None]
    efecto_stock: str
    efecto_uso: str
    # None → lo decide el resolver de estatus
    estatus_resultante: str | None
    requiere_descripcion: bool = False
    acepta_cantidad: bool = True
    cantidad_por_defecto: int | None = None
    cantidad_minima: int = 1
    # Al cerrar el uso el estatus 'En uso' deja de ser fijo
    libera_estatus_manual: bool = False

    def cantidad_aplicada(self, estado: EstadoProducto, cantidad: int | None) -> int:
        """Cantidad que efectivamente se descuenta (y se registra en la bitácora)."""
        if self.efecto_stock == EFECTO_STOCK_RESTAR:
            return cantidad
        if self.efecto_stock == EFECTO_STOCK_VACIAR:
            return estado.existencia
        return 0


def _exigir_stock(estado: EstadoProducto, mensaje: str) -> None:
    if estado.existencia <= 0:
        raise StockInsuficienteError(mensaje)


def _exigir_cantidad_disponible(estado: EstadoProducto, cantidad: int) -> None:
    if cantidad > estado.existencia:
        raise StockInsuficienteError(
            f"Stock insuficiente. Solo hay {estado.existencia} unidades."
        )


ESTATUS_PERMITIDOS_INICIAR_USO = frozenset({
    EstatusProducto.DISPONIBLE.value,
    EstatusProducto.BAJO_STOCK.value,
    EstatusProducto.PROXIMO_A_CADUCAR.value,
})


def _precondicion_iniciar_uso(estado: EstadoProducto, cantidad: int | None) -> None:
    if str(estado.estatus) not in ESTATUS_PERMITIDOS_INICIAR_USO:
        etiqueta = EstatusProducto(estado.estatus).label
        raise TransicionInvalidaError(
            f"No se puede iniciar uso de un producto con estatus '{etiqueta}'."
        )
    if estado.tiene_uso_abierto:
        raise TransicionInvalidaError(
            "El producto ya tiene un ciclo de uso activo; finalícelo antes de iniciar otro."
        )
    _exigir_stock(estado, "No hay stock disponible para iniciar uso.")


def _precondicion_finalizar_uso(estado: EstadoProducto, cantidad: int | None) -> None:
    if not estado.tiene_uso_abierto:
        raise SinUsoActivoError()
    if estado.estatus != EstatusProducto.EN_USO:
        raise TransicionInvalidaError(
            "Solo se puede finalizar uso de productos que estén 'En uso'."
        )
    _exigir_cantidad_disponible(estado, cantidad)


def _precondicion_incidencia(estado: EstadoProducto, cantidad: int | None) -> None:
    _exigir_stock(
        estado, "No se puede reportar incidencia de un producto sin stock disponible."
    )
    _exigir_cantidad_disponible(estado, cantidad)


def _precondicion_baja(estado: EstadoProducto, cantidad: int | None) -> None:
    _exigir_stock(estado, "No se puede dar de baja un producto sin stock disponible.")


REGLAS_SALIDA: dict[str, ReglaSalida] = {
    MotivoSalida.INICIAR_USO.value: ReglaSalida(
        motivo=MotivoSalida.INICIAR_USO.value,
        precondicion=_precondicion_iniciar_uso,
        efecto_stock=EFECTO_STOCK_NINGUNO,
        efecto_uso=EFECTO_USO_ABRIR,
        estatus_resultante=EstatusProducto.EN_USO.value,
        acepta_cantidad=False,
    ),
    MotivoSalida.FINALIZAR_USO.value: ReglaSalida(
        motivo=MotivoSalida.FINALIZAR_USO.value,
        precondicion=_precondicion_finalizar_uso,
        efecto_stock=EFECTO_STOCK_RESTAR,
        efecto_uso=EFECTO_USO_CERRAR,
        estatus_resultante=None,
        cantidad_por_defecto=1,
        # Devolver un equipo no consume existencia
        cantidad_minima=0,
        libera_estatus_manual=True,
    ),
    MotivoSalida.INCIDENCIA.value: ReglaSalida(
        motivo=MotivoSalida.INCIDENCIA.value,
        precondicion=_precondicion_incidencia,
        efecto_stock=EFECTO_STOCK_RESTAR,
        efecto_uso=EFECTO_USO_NINGUNO,
        estatus_resultante=None,
        requiere_descripcion=True,
        cantidad_por_defecto=1,
    ),
    MotivoSalida.BAJA.value: ReglaSalida(
        motivo=MotivoSalida.BAJA.value,
        precondicion=_precondicion_baja,
        efecto_stock=EFECTO_STOCK_VACIAR,
        efecto_uso=EFECTO_USO_NINGUNO,
        estatus_resultante=EstatusProducto.BAJA.value,
        requiere_descripcion=True,
        acepta_cantidad=False,
    ),
}


def obtener_regla(motivo: str) -> ReglaSalida:
    try:
        return REGLAS_SALIDA[str(motivo)]
    except KeyError:
        raise TransicionInvalidaError(f"Motivo de salida desconocido: '{motivo}'.") from None


def validar_parametros(regla: ReglaSalida, *, cantidad, descripcion: str) -> int | None:
    """
    Validaciones que no dependen del estado del producto (antes del bloqueo).
    Devuelve la cantidad normalizada (con el valor por defecto aplicado).
    """
    if not regla.acepta_cantidad:
        if cantidad is not None:
            raise CantidadInvalidaError(
                f"El motivo '{MotivoSalida(regla.motivo).label}' no admite cantidad."
            )
    else:
        if cantidad is None:
            cantidad = regla.cantidad_por_defecto
        if isinstance(cantidad, bool) or not isinstance(cantidad, int):
            raise CantidadInvalidaError("La cantidad debe ser un número entero.")
        if cantidad < regla.cantidad_minima:
            raise CantidadInvalidaError(
                f"La cantidad debe ser mayor o igual a {regla.cantidad_minima}."
            )

    if regla.requiere_descripcion and not (descripcion or "").strip():
        raise DescripcionRequeridaError(
            f"La descripción es obligatoria para el motivo '{MotivoSalida(regla.motivo).label}'."
        )

    return cantidad


def validar_estado(regla: ReglaSalida, estado: EstadoProducto, cantidad: int | None) -> None:
    """Precondiciones contra el estado bloqueado del producto."""
    if estado.estatus == EstatusProducto.BAJA:
        raise ProductoDadoDeBajaError()
    regla.precondicion(estado, cantidad)
