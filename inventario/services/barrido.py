import logging
from datetime import date

from django.db import DatabaseError, transaction
from django.utils import timezone

from inventario.models import ESTATUS_MANUALES, Producto
from inventario.services.estatus import resolver_estatus_producto

logger = logging.getLogger(__name__)


def _actualizar_producto(producto_id, hoy: date) -> bool:
    """
    Recalcula el estatus de un producto bajo su propio bloqueo.
    Devuelve True si el estatus cambió. Si otra transacción tiene el
    producto bloqueado se omite; lo recoge el siguiente barrido.
    """
    with transaction.atomic():
        producto = (
            Producto.objects.select_for_update(skip_locked=True)
            .filter(pk=producto_id)
            .exclude(estatus__in=ESTATUS_MANUALES)
            .first()
        )
        if producto is None:
            logger.debug("Barrido: producto %s bloqueado o con estatus manual, se omite", producto_id)
            return False

        nuevo = resolver_estatus_producto(producto, hoy=hoy)
        if nuevo == producto.estatus:
            return False

        anterior = producto.estatus
        producto.estatus = nuevo
        producto.save(update_fields=["estatus", "updated_at"])

    logger.info("Barrido: producto %s %s → %s", producto_id, anterior, nuevo)
    return True


def actualizar_estatus_productos(hoy: date | None = None, productos=None) -> int:
    """
    Barrido periódico de estatus.

    Reaplica el resolver a todos los productos que no estén 'En uso' ni
    'Baja' y guarda solo los que cambian, cada uno en su propia transacción
    corta. Un error en un producto se registra y el barrido continúa.

    `productos` (ids o queryset) limita el barrido a esos productos.

    Idempotente: una segunda corrida sin movimientos intermedios no cambia nada.
    Devuelve el número de productos cuyo estatus cambió.
    """
    if hoy is None:
        hoy = timezone.localdate()

    candidatos = Producto.objects.exclude(estatus__in=ESTATUS_MANUALES)
    if productos is not None:
        candidatos = candidatos.filter(pk__in=productos)

    actualizados = 0
    revisados = 0
    for producto in candidatos.iterator():
        revisados += 1
        # Prefiltro sin bloqueo; la decisión final se toma sobre la fila bloqueada
        if resolver_estatus_producto(producto, hoy=hoy) == producto.estatus:
            continue
        try:
            if _actualizar_producto(producto.pk, hoy):
                actualizados += 1
        except DatabaseError:
            logger.exception("Barrido: error al actualizar el producto %s", producto.pk)

    logger.info(
        "Barrido de estatus terminado: %s productos revisados, %s actualizados",
        revisados,
        actualizados,
    )
    return actualizados
