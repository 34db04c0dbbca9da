from rest_framework import serializers

from .models import Movimiento, Producto, TipoProducto, UsoProducto


class ProductoSerializer(serializers.ModelSerializer):
    """
    Lectura de productos. Existencia y estatus son de solo lectura:
    solo cambian mediante movimientos.
    """

    estatus_display = serializers.CharField(source="get_estatus_display", read_only=True)
    tipo_display = serializers.CharField(source="get_tipo_display", read_only=True)

    class Meta:
        model = Producto
        fields = [
            "id",
            "nombre",
            "marca",
            "lote",
            "tipo",
            "tipo_display",
            "prioridad",
            "existencia_actual",
            "stock_minimo",
            "estatus",
            "estatus_display",
            "caducidad",
            "presentacion",
            "fecha_ingreso",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [f for f in fields if not f.endswith("_display")]


class ProductoAltaSerializer(serializers.ModelSerializer):
    """
    Alta de un lote. `existencia_inicial` genera la entrada inicial en la bitácora.
    """

    existencia_inicial = serializers.IntegerField(min_value=0, default=0)

    class Meta:
        model = Producto
        fields = [
            "nombre",
            "marca",
            "lote",
            "tipo",
            "prioridad",
            "existencia_inicial",
            "stock_minimo",
            "caducidad",
            "presentacion",
        ]

    def validate_stock_minimo(self, value):
        if value < 0:
            raise serializers.ValidationError("El stock mínimo no puede ser negativo.")
        return value

    def validate(self, attrs):
        if attrs.get("caducidad") and attrs.get("tipo") != TipoProducto.REACTIVO:
            raise serializers.ValidationError({
                "caducidad": "Solo los reactivos pueden tener fecha de caducidad."
            })
        return attrs


class MovimientoSerializer(serializers.ModelSerializer):
    producto_nombre = serializers.CharField(source="producto.nombre", read_only=True)
    usuario = serializers.CharField(source="usuario.get_username", read_only=True)
    motivo_display = serializers.SerializerMethodField()

    class Meta:
        model = Movimiento
        fields = [
            "id",
            "producto",
            "producto_nombre",
            "usuario",
            "tipo",
            "motivo",
            "motivo_display",
            "cantidad",
            "descripcion_adicional",
            "fecha_movimiento",
        ]
        read_only_fields = ["id", "producto", "tipo", "motivo", "cantidad", "descripcion_adicional", "fecha_movimiento"]

    def get_motivo_display(self, obj):
        return obj.get_motivo_display() if obj.motivo else None


class EntradaHistorialSerializer(serializers.Serializer):
    movimiento_id = serializers.IntegerField()
    tipo = serializers.CharField()
    motivo = serializers.CharField(allow_null=True)
    cantidad = serializers.IntegerField()
    descripcion = serializers.CharField(allow_blank=True)
    usuario = serializers.CharField()
    fecha_movimiento = serializers.DateTimeField()
    inicio_uso = serializers.DateTimeField(allow_null=True)
    fin_uso = serializers.DateTimeField(allow_null=True)
    duracion_uso = serializers.DurationField(allow_null=True)


# --- Solicitudes de movimiento ---
# Solo se valida la forma; las reglas de negocio (cantidad > 0, descripción
# obligatoria, motivo válido) las aplican los servicios con su código de error.

class EntradaRequestSerializer(serializers.Serializer):
    producto = serializers.IntegerField()
    cantidad = serializers.IntegerField()
    descripcion = serializers.CharField(required=False, allow_blank=True, default="")


class SalidaRequestSerializer(serializers.Serializer):
    producto = serializers.IntegerField()
    motivo = serializers.CharField()
    cantidad = serializers.IntegerField(required=False, allow_null=True, default=None)
    descripcion = serializers.CharField(required=False, allow_blank=True, default="")


class BajaRequestSerializer(serializers.Serializer):
    producto = serializers.IntegerField()
    descripcion = serializers.CharField(required=False, allow_blank=True, default="")


class ProductoSnapshotSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    tipo = serializers.CharField()
    existencia_actual = serializers.IntegerField()
    stock_minimo = serializers.IntegerField()
    estatus = serializers.CharField()
    caducidad = serializers.DateField(allow_null=True)


class ResultadoMovimientoSerializer(serializers.Serializer):
    movimiento_id = serializers.IntegerField()
    producto = ProductoSnapshotSerializer()


class UsoAbiertoSerializer(serializers.ModelSerializer):
    producto_nombre = serializers.CharField(source="producto.nombre", read_only=True)
    lote = serializers.CharField(source="producto.lote", read_only=True)
    responsable = serializers.CharField(source="usuario.get_username", read_only=True)

    class Meta:
        model = UsoProducto
        fields = ["id", "producto", "producto_nombre", "lote", "responsable", "fecha_inicio"]
        read_only_fields = ["id", "producto", "fecha_inicio"]
