from dataclasses import dataclass
from datetime import datetime, timedelta

from inventario.exceptions import ProductoNoEncontradoError
from inventario.models import MotivoSalida, Movimiento, Producto, UsoProducto
from inventario.services.transiciones import REGLAS_SALIDA


@dataclass(frozen=True)
class EntradaHistorial:
    movimiento_id: int
    tipo: str
    motivo: str | None
    cantidad: int
    descripcion: str
    usuario: str
    fecha_movimiento: datetime
    # Solo si el movimiento abrió o cerró un ciclo de uso
    inicio_uso: datetime | None = None
    fin_uso: datetime | None = None
    duracion_uso: timedelta | None = None


def _uso_del_movimiento(movimiento: Movimiento) -> UsoProducto | None:
    for relacion in ("uso_iniciado", "uso_finalizado"):
        try:
            return getattr(movimiento, relacion)
        except UsoProducto.DoesNotExist:
            continue
    return None


def obtener_historial_producto(producto_id) -> list[EntradaHistorial]:
    """
    Historial de movimientos de un producto, del más reciente al más antiguo.

    Los movimientos de iniciar / finalizar uso llevan además el inicio, fin
    y duración del ciclo de uso correspondiente (fin y duración vacíos si el
    ciclo sigue abierto).
    """
    if not Producto.objects.filter(pk=producto_id).exists():
        raise ProductoNoEncontradoError(f"Producto {producto_id} no encontrado.")

    movimientos = (
        Movimiento.objects.filter(producto_id=producto_id)
        .select_related("usuario", "uso_iniciado", "uso_finalizado")
        .order_by("-fecha_movimiento", "-id")
    )

    historial = []
    for mov in movimientos:
        uso = _uso_del_movimiento(mov)
        historial.append(
            EntradaHistorial(
                movimiento_id=mov.id,
                tipo=mov.tipo,
                motivo=mov.motivo,
                cantidad=mov.cantidad,
                descripcion=mov.descripcion_adicional,
                usuario=mov.usuario.get_username(),
                fecha_movimiento=mov.fecha_movimiento,
                inicio_uso=uso.fecha_inicio if uso else None,
                fin_uso=uso.fecha_fin if uso else None,
                duracion_uso=uso.duracion if uso else None,
            )
        )
    return historial


def obtener_bitacora(*, producto_id=None, tipo: str | None = None, motivo: str | None = None):
    """
    Bitácora general de movimientos (todos los productos), más recientes primero.
    Filtros opcionales por producto, tipo (entrada/salida) y motivo.
    """
    qs = Movimiento.objects.select_related("producto", "usuario").order_by(
        "-fecha_movimiento", "-id"
    )
    if producto_id is not None:
        qs = qs.filter(producto_id=producto_id)
    if tipo:
        qs = qs.filter(tipo=tipo)
    if motivo:
        qs = qs.filter(motivo=motivo)
    return qs


def listar_motivos_salida() -> list[dict]:
    """Catálogo de motivos de salida con lo que exige cada uno."""
    return [
        {
            "codigo": regla.motivo,
            "nombre": MotivoSalida(regla.motivo).label,
            "requiere_descripcion": regla.requiere_descripcion,
            "acepta_cantidad": regla.acepta_cantidad,
            "cantidad_minima": regla.cantidad_minima if regla.acepta_cantidad else None,
            "cantidad_por_defecto": regla.cantidad_por_defecto if regla.acepta_cantidad else None,
        }
        for regla in REGLAS_SALIDA.values()
    ]


def obtener_usos_abiertos():
    """Ciclos de uso en curso con su responsable, el más reciente primero."""
    return (
        UsoProducto.objects.filter(fecha_fin__isnull=True)
        .select_related("producto", "usuario")
        .order_by("-fecha_inicio", "-id")
    )
