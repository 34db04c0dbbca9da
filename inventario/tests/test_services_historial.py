from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from inventario.exceptions import CantidadInvalidaError, ProductoNoEncontradoError
from inventario.models import (
    EstatusProducto,
    MotivoSalida,
    Movimiento,
    Producto,
    TipoMovimiento,
    TipoProducto,
)
from inventario.services.historial import (
    listar_motivos_salida,
    obtener_bitacora,
    obtener_historial_producto,
)
from inventario.services.movimientos import registrar_entrada, registrar_salida
from inventario.services.productos import (
    DESCRIPCION_REGISTRO_INICIAL,
    obtener_productos_bajo_stock,
    obtener_productos_por_caducar,
    registrar_producto,
)

User = get_user_model()


class HistorialProductoTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="tecnico", password="password123")
        self.producto = Producto.objects.create(
            nombre="Espectrofotómetro",
            tipo=TipoProducto.EQUIPO,
            existencia_actual=2,
            stock_minimo=0,
            estatus=EstatusProducto.DISPONIBLE,
        )

    def salida(self, motivo, **kwargs):
        return registrar_salida(
            producto_id=self.producto.id,
            usuario=self.user,
            motivo=motivo,
            **kwargs,
        )

    def test_historial_mas_reciente_primero_con_datos_de_uso(self):
        inicio = self.salida(MotivoSalida.INICIAR_USO)
        fin = self.salida(MotivoSalida.FINALIZAR_USO, cantidad=0)
        incidencia = self.salida(MotivoSalida.INCIDENCIA, descripcion="Lámpara fundida")

        historial = obtener_historial_producto(self.producto.id)

        self.assertEqual(
            [h.movimiento_id for h in historial],
            [incidencia.movimiento_id, fin.movimiento_id, inicio.movimiento_id],
        )

        entrada_incidencia, entrada_fin, entrada_inicio = historial
        self.assertIsNone(entrada_incidencia.inicio_uso)
        self.assertIsNone(entrada_incidencia.duracion_uso)
        self.assertEqual(entrada_incidencia.descripcion, "Lámpara fundida")
        self.assertEqual(entrada_incidencia.usuario, "tecnico")

        self.assertIsNotNone(entrada_fin.inicio_uso)
        self.assertIsNotNone(entrada_fin.fin_uso)
        self.assertEqual(entrada_fin.duracion_uso, entrada_fin.fin_uso - entrada_fin.inicio_uso)
        self.assertEqual(entrada_inicio.inicio_uso, entrada_fin.inicio_uso)

    def test_ciclo_abierto_sin_fin_ni_duracion(self):
        self.salida(MotivoSalida.INICIAR_USO)
        (entrada,) = obtener_historial_producto(self.producto.id)
        self.assertEqual(entrada.motivo, MotivoSalida.INICIAR_USO)
        self.assertIsNotNone(entrada.inicio_uso)
        self.assertIsNone(entrada.fin_uso)
        self.assertIsNone(entrada.duracion_uso)

    def test_producto_sin_movimientos(self):
        self.assertEqual(obtener_historial_producto(self.producto.id), [])

    def test_producto_inexistente(self):
        with self.assertRaises(ProductoNoEncontradoError):
            obtener_historial_producto(99999)


class BitacoraTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="tecnico", password="password123")
        self.a = Producto.objects.create(
            nombre="Vasos de precipitado",
            tipo=TipoProducto.MATERIAL,
            existencia_actual=10,
            stock_minimo=1,
        )
        self.b = Producto.objects.create(
            nombre="Matraces",
            tipo=TipoProducto.MATERIAL,
            existencia_actual=10,
            stock_minimo=1,
        )
        registrar_entrada(producto_id=self.a.id, usuario=self.user, cantidad=1)
        registrar_salida(
            producto_id=self.b.id,
            usuario=self.user,
            motivo=MotivoSalida.INCIDENCIA,
            descripcion="Roto",
        )

    def test_bitacora_general(self):
        bitacora = list(obtener_bitacora())
        self.assertEqual(len(bitacora), 2)
        self.assertEqual(bitacora[0].producto, self.b)

    def test_filtros(self):
        self.assertEqual(obtener_bitacora(producto_id=self.a.id).count(), 1)
        self.assertEqual(obtener_bitacora(tipo=TipoMovimiento.SALIDA).get().producto, self.b)
        self.assertEqual(obtener_bitacora(motivo=MotivoSalida.INICIAR_USO).count(), 0)

    def test_catalogo_de_motivos(self):
        motivos = {m["codigo"]: m for m in listar_motivos_salida()}
        self.assertEqual(set(motivos), set(MotivoSalida.values))
        self.assertTrue(motivos["incidencia"]["requiere_descripcion"])
        self.assertFalse(motivos["iniciar_uso"]["acepta_cantidad"])
        self.assertEqual(motivos["finalizar_uso"]["nombre"], "Finalizar uso")

    def test_catalogo_expone_limites_de_cantidad(self):
        motivos = {m["codigo"]: m for m in listar_motivos_salida()}
        self.assertEqual(motivos["finalizar_uso"]["cantidad_minima"], 0)
        self.assertEqual(motivos["finalizar_uso"]["cantidad_por_defecto"], 1)
        self.assertEqual(motivos["incidencia"]["cantidad_minima"], 1)
        self.assertIsNone(motivos["iniciar_uso"]["cantidad_minima"])
        self.assertIsNone(motivos["baja"]["cantidad_por_defecto"])


class RegistrarProductoTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="almacen", password="password123")

    def test_registro_con_existencia_inicial_crea_entrada(self):
        producto = registrar_producto(
            usuario=self.user,
            nombre="Cajas Petri",
            tipo=TipoProducto.MATERIAL,
            existencia_inicial=20,
            stock_minimo=5,
            lote="L-001",
        )

        self.assertEqual(producto.estatus, EstatusProducto.DISPONIBLE)
        self.assertEqual(producto.existencia_actual, 20)
        movimiento = Movimiento.objects.get(producto=producto)
        self.assertEqual(movimiento.tipo, TipoMovimiento.ENTRADA)
        self.assertEqual(movimiento.cantidad, 20)
        self.assertEqual(movimiento.descripcion_adicional, DESCRIPCION_REGISTRO_INICIAL)

    def test_registro_sin_existencia_no_crea_movimiento(self):
        producto = registrar_producto(
            usuario=self.user,
            nombre="Termómetro",
            tipo=TipoProducto.EQUIPO,
        )
        self.assertEqual(producto.estatus, EstatusProducto.SIN_STOCK)
        self.assertFalse(Movimiento.objects.exists())

    def test_registro_reactivo_por_caducar(self):
        producto = registrar_producto(
            usuario=self.user,
            nombre="Fenolftaleína",
            tipo=TipoProducto.REACTIVO,
            existencia_inicial=3,
            caducidad=timezone.localdate() + timedelta(days=5),
        )
        self.assertEqual(producto.estatus, EstatusProducto.PROXIMO_A_CADUCAR)

    def test_caducidad_solo_en_reactivos(self):
        with self.assertRaises(ValidationError):
            registrar_producto(
                usuario=self.user,
                nombre="Balanza",
                tipo=TipoProducto.EQUIPO,
                existencia_inicial=1,
                caducidad=timezone.localdate(),
            )
        self.assertFalse(Producto.objects.exists())

    def test_existencia_inicial_negativa(self):
        with self.assertRaises(CantidadInvalidaError):
            registrar_producto(
                usuario=self.user,
                nombre="Gradillas",
                tipo=TipoProducto.MATERIAL,
                existencia_inicial=-1,
            )


class AlertasInventarioTests(TestCase):
    def setUp(self):
        hoy = timezone.localdate()
        self.por_caducar = Producto.objects.create(
            nombre="Buffer",
            tipo=TipoProducto.REACTIVO,
            existencia_actual=5,
            caducidad=hoy + timedelta(days=7),
        )
        self.caducado = Producto.objects.create(
            nombre="Reactivo viejo",
            tipo=TipoProducto.REACTIVO,
            existencia_actual=5,
            caducidad=hoy - timedelta(days=1),
        )
        self.dado_de_baja = Producto.objects.create(
            nombre="Reactivo desechado",
            tipo=TipoProducto.REACTIVO,
            existencia_actual=0,
            estatus=EstatusProducto.BAJA,
            caducidad=hoy + timedelta(days=2),
        )
        self.bajo = Producto.objects.create(
            nombre="Torundas",
            tipo=TipoProducto.MATERIAL,
            existencia_actual=2,
            stock_minimo=5,
        )
        self.equipo = Producto.objects.create(
            nombre="Autoclave",
            tipo=TipoProducto.EQUIPO,
            existencia_actual=1,
            stock_minimo=3,
        )

    def test_productos_por_caducar(self):
        self.assertEqual(list(obtener_productos_por_caducar()), [self.por_caducar])
        self.assertEqual(list(obtener_productos_por_caducar(dias=3)), [])

    def test_productos_bajo_stock_excluye_equipos(self):
        self.assertEqual(list(obtener_productos_bajo_stock()), [self.bajo])
