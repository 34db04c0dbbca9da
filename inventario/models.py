from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from inventario.exceptions import MovimientoInmutableError


class TimeStampedModel(models.Model):
    """
    Modelo base abstracto con timestamps estándar.
    """
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class TipoProducto(models.TextChoices):
    REACTIVO = "reactivo", "Reactivo"
    EQUIPO = "equipo", "Equipo"
    MATERIAL = "material", "Material"


class Prioridad(models.TextChoices):
    ALTA = "alta", "Alta"
    MEDIA = "media", "Media"
    BAJA = "baja", "Baja"


class EstatusProducto(models.TextChoices):
    DISPONIBLE = "disponible", "Disponible"
    SIN_STOCK = "sin_stock", "Sin stock"
    BAJO_STOCK = "bajo_stock", "Bajo stock"
    EN_USO = "en_uso", "En uso"
    BAJA = "baja", "Baja"
    CADUCADO = "caducado", "Caducado"
    PROXIMO_A_CADUCAR = "proximo_a_caducar", "Próximo a caducar"


# Estatus que solo cambian por un movimiento, nunca por el barrido automático
ESTATUS_MANUALES = frozenset({EstatusProducto.EN_USO.value, EstatusProducto.BAJA.value})


class TipoMovimiento(models.TextChoices):
    ENTRADA = "entrada", "Entrada"
    SALIDA = "salida", "Salida"


class MotivoSalida(models.TextChoices):
    INICIAR_USO = "iniciar_uso", "Iniciar uso"
    FINALIZAR_USO = "finalizar_uso", "Finalizar uso"
    INCIDENCIA = "incidencia", "Incidencia"
    BAJA = "baja", "Baja"


class Producto(TimeStampedModel):
    """
    Un lote de inventario del laboratorio (reactivo, equipo o material).

    `existencia_actual` y `estatus` son el estado vigente; solo los modifican
    los servicios de movimientos y el barrido de estatus, nunca la edición
    directa del registro.
    """
    nombre = models.CharField(max_length=200)
    marca = models.CharField(max_length=100, blank=True)
    lote = models.CharField(
        max_length=100,
        blank=True,
        help_text="Código de lote entregado por el proveedor o interno.",
    )
    tipo = models.CharField(
        max_length=20,
        choices=TipoProducto.choices,
    )
    prioridad = models.CharField(
        max_length=10,
        choices=Prioridad.choices,
        default=Prioridad.MEDIA,
    )

    existencia_actual = models.PositiveIntegerField(
        default=0,
        help_text="Unidades disponibles de este lote.",
    )
    stock_minimo = models.PositiveIntegerField(
        default=0,
        help_text="Por debajo o igual a esta cantidad el lote se considera 'Bajo stock'.",
    )
    estatus = models.CharField(
        max_length=30,
        choices=EstatusProducto.choices,
        default=EstatusProducto.DISPONIBLE,
        db_index=True,
    )

    # Solo reactivos
    caducidad = models.DateField(
        null=True,
        blank=True,
        help_text="Fecha de caducidad del reactivo (si aplica).",
    )
    presentacion = models.CharField(
        max_length=100,
        blank=True,
        help_text="Presentación del reactivo (ej: frasco 500 ml).",
    )

    fecha_ingreso = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = "Producto"
        verbose_name_plural = "Productos"
        ordering = ["fecha_ingreso", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(existencia_actual__gte=0),
                name="producto_existencia_no_negativa",
            ),
        ]

    def __str__(self):
        base = self.nombre
        if self.lote:
            base += f" [Lote {self.lote}]"
        return base

    def clean(self):
        if self.caducidad and not self.es_reactivo:
            raise ValidationError(
                {"caducidad": "Solo los reactivos pueden tener fecha de caducidad."}
            )

    @property
    def es_reactivo(self) -> bool:
        return self.tipo == TipoProducto.REACTIVO

    @property
    def uso_abierto(self) -> "UsoProducto | None":
        return self.usos.filter(fecha_fin__isnull=True).first()


class MovimientoQuerySet(models.QuerySet):
    """
    La bitácora es de solo inserción: no se permiten actualizaciones
    ni borrados masivos.
    """

    def update(self, **kwargs):
        raise MovimientoInmutableError("Los movimientos de inventario no se pueden modificar.")

    def delete(self):
        raise MovimientoInmutableError("Los movimientos de inventario no se pueden eliminar.")


class Movimiento(models.Model):
    """
    Registro inmutable de un cambio de existencia o de uso de un producto.

    - Entrada: suma `cantidad` a la existencia.
    - Salida: lleva un `motivo` (iniciar uso, finalizar uso, incidencia, baja)
      y registra la cantidad efectivamente aplicada.
    """

    producto = models.ForeignKey(
        Producto,
        on_delete=models.PROTECT,
        related_name="movimientos",
    )
    usuario = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="movimientos_inventario",
        help_text="Usuario que registró el movimiento.",
    )
    tipo = models.CharField(
        max_length=10,
        choices=TipoMovimiento.choices,
    )
    motivo = models.CharField(
        max_length=20,
        choices=MotivoSalida.choices,
        null=True,
        blank=True,
        help_text="Solo para salidas.",
    )
    cantidad = models.PositiveIntegerField(
        help_text="Cantidad efectivamente aplicada a la existencia.",
    )
    descripcion_adicional = models.TextField(blank=True)
    fecha_movimiento = models.DateTimeField(default=timezone.now, db_index=True)

    objects = MovimientoQuerySet.as_manager()

    class Meta:
        verbose_name = "Movimiento de inventario"
        verbose_name_plural = "Movimientos de inventario"
        ordering = ["-fecha_movimiento", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(tipo=TipoMovimiento.ENTRADA, motivo__isnull=True)
                    | Q(tipo=TipoMovimiento.SALIDA, motivo__isnull=False)
                ),
                name="movimiento_motivo_solo_en_salidas",
            ),
        ]

    def __str__(self):
        etiqueta = self.get_motivo_display() if self.motivo else self.get_tipo_display()
        return f"{etiqueta} - {self.producto} ({self.cantidad})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise MovimientoInmutableError("Los movimientos de inventario no se pueden modificar.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise MovimientoInmutableError("Los movimientos de inventario no se pueden eliminar.")


class UsoProducto(models.Model):
    """
    Intervalo durante el cual un producto está en uso por un usuario.
    Abierto mientras `fecha_fin` sea nula; a lo más uno abierto por producto.
    """

    producto = models.ForeignKey(
        Producto,
        on_delete=models.PROTECT,
        related_name="usos",
    )
    usuario = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="usos_producto",
    )
    fecha_inicio = models.DateTimeField()
    fecha_fin = models.DateTimeField(null=True, blank=True)
    movimiento_inicio = models.OneToOneField(
        Movimiento,
        on_delete=models.PROTECT,
        related_name="uso_iniciado",
    )
    movimiento_fin = models.OneToOneField(
        Movimiento,
        on_delete=models.PROTECT,
        related_name="uso_finalizado",
        null=True,
        blank=True,
    )

    class Meta:
        verbose_name = "Uso de producto"
        verbose_name_plural = "Usos de producto"
        ordering = ["-fecha_inicio", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["producto"],
                condition=Q(fecha_fin__isnull=True),
                name="uq_uso_abierto_por_producto",
            ),
        ]

    def __str__(self):
        fin = self.fecha_fin.isoformat() if self.fecha_fin else "en curso"
        return f"Uso de {self.producto} ({self.fecha_inicio.isoformat()} → {fin})"

    @property
    def duracion(self) -> timedelta | None:
        if self.fecha_fin is None:
            return None
        return self.fecha_fin - self.fecha_inicio
