from datetime import timedelta

from django.utils import timezone
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import EstatusProducto, Producto
from .serializers import (
    BajaRequestSerializer,
    EntradaHistorialSerializer,
    EntradaRequestSerializer,
    MovimientoSerializer,
    ProductoAltaSerializer,
    ProductoSerializer,
    ResultadoMovimientoSerializer,
    SalidaRequestSerializer,
    UsoAbiertoSerializer,
)
from .services.barrido import actualizar_estatus_productos
from .services.historial import (
    listar_motivos_salida,
    obtener_bitacora,
    obtener_historial_producto,
    obtener_usos_abiertos,
)
from .services.movimientos import registrar_baja, registrar_entrada, registrar_salida
from .services.productos import (
    obtener_productos_bajo_stock,
    obtener_productos_por_caducar,
    registrar_producto,
)

# Ventanas de `periodo` sobre la fecha de ingreso, en días
PERIODOS_INGRESO = {
    "semanal": 7,
    "mensual": 30,
    "trimestral": 90,
    "anual": 365,
}


class ProductoViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Productos del inventario. No hay edición ni borrado: la existencia y el
    estatus cambian únicamente por movimientos o por el barrido de estatus.
    """

    queryset = Producto.objects.all()
    serializer_class = ProductoSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def get_serializer_class(self):
        if self.action == "create":
            return ProductoAltaSerializer
        return ProductoSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params

        # "todos" equivale a no filtrar
        for campo in ("estatus", "tipo", "prioridad"):
            valor = params.get(campo)
            if valor and valor != "todos":
                qs = qs.filter(**{campo: valor})

        busqueda = params.get("busqueda", "").strip()
        if busqueda:
            qs = qs.filter(nombre__icontains=busqueda)

        dias = PERIODOS_INGRESO.get(params.get("periodo"))
        if dias:
            qs = qs.filter(fecha_ingreso__gte=timezone.now() - timedelta(days=dias))

        if params.get("orden") == "recientes":
            qs = qs.order_by("-fecha_ingreso", "-id")
        return qs

    def list(self, request, *args, **kwargs):
        # Los estatus por fecha (caducidad) se ponen al día antes de listar
        actualizar_estatus_productos()
        return super().list(request, *args, **kwargs)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        producto = registrar_producto(usuario=request.user, **serializer.validated_data)
        return Response(ProductoSerializer(producto).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"], url_path="historial")
    def historial(self, request, pk=None):
        """
        GET /api/productos/<id>/historial/
        Movimientos del producto, más recientes primero, con los datos del ciclo de uso.
        """
        historial = obtener_historial_producto(pk)
        return Response(EntradaHistorialSerializer(historial, many=True).data)

    @action(
        detail=False,
        methods=["post"],
        url_path="actualizar-estatus",
        permission_classes=[permissions.IsAdminUser],
    )
    def actualizar_estatus(self, request):
        actualizados = actualizar_estatus_productos()
        return Response({"actualizados": actualizados})

    @action(detail=False, methods=["get"], url_path="alertas")
    def alertas(self, request):
        """
        GET /api/productos/alertas/
        Reactivos por caducar, caducados y productos en o bajo su stock mínimo.
        """
        dias = request.query_params.get("dias")
        actualizar_estatus_productos()
        por_caducar = obtener_productos_por_caducar(dias=int(dias) if dias and dias.isdigit() else None)
        caducados = Producto.objects.filter(estatus=EstatusProducto.CADUCADO)
        bajo_stock = obtener_productos_bajo_stock()

        return Response(
            {
                "por_caducar": ProductoSerializer(por_caducar, many=True).data,
                "caducados": ProductoSerializer(caducados, many=True).data,
                "bajo_stock": ProductoSerializer(bajo_stock, many=True).data,
            }
        )

    @action(detail=False, methods=["get"], url_path="en-uso")
    def en_uso(self, request):
        """
        GET /api/productos/en-uso/
        Ciclos de uso abiertos: producto, responsable y fecha de inicio.
        """
        usos = obtener_usos_abiertos()
        pagina = self.paginate_queryset(usos)
        if pagina is not None:
            return self.get_paginated_response(UsoAbiertoSerializer(pagina, many=True).data)
        return Response(UsoAbiertoSerializer(usos, many=True).data)


class MovimientoViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Bitácora de movimientos y registro de entradas / salidas / bajas.
    Los movimientos no se editan ni se borran.
    """

    serializer_class = MovimientoSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        params = self.request.query_params
        producto = params.get("producto")
        return obtener_bitacora(
            producto_id=int(producto) if producto and producto.isdigit() else None,
            tipo=params.get("tipo"),
            motivo=params.get("motivo"),
        )

    def _responder(self, resultado):
        return Response(
            ResultadoMovimientoSerializer(resultado).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path="motivos")
    def motivos(self, request):
        return Response(listar_motivos_salida())

    @action(detail=False, methods=["post"], url_path="entradas")
    def entradas(self, request):
        """
        POST /api/movimientos/entradas/
        {"producto": id, "cantidad": n, "descripcion": "..."}
        """
        serializer = EntradaRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        resultado = registrar_entrada(
            producto_id=data["producto"],
            usuario=request.user,
            cantidad=data["cantidad"],
            descripcion=data["descripcion"],
        )
        return self._responder(resultado)

    @action(detail=False, methods=["post"], url_path="salidas")
    def salidas(self, request):
        """
        POST /api/movimientos/salidas/
        {"producto": id, "motivo": "iniciar_uso|finalizar_uso|incidencia",
         "cantidad": n (opcional), "descripcion": "..."}
        """
        serializer = SalidaRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        resultado = registrar_salida(
            producto_id=data["producto"],
            usuario=request.user,
            motivo=data["motivo"],
            cantidad=data["cantidad"],
            descripcion=data["descripcion"],
        )
        return self._responder(resultado)

    @action(detail=False, methods=["post"], url_path="bajas")
    def bajas(self, request):
        """
        POST /api/movimientos/bajas/
        {"producto": id, "descripcion": "motivo de la baja"}
        """
        serializer = BajaRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        resultado = registrar_baja(
            producto_id=data["producto"],
            usuario=request.user,
            descripcion=data["descripcion"],
        )
        return self._responder(resultado)
