from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError
from django.test import TestCase
from django.utils import timezone

from inventario.exceptions import MovimientoInmutableError
from inventario.models import (
    MotivoSalida,
    Movimiento,
    Producto,
    TipoMovimiento,
    TipoProducto,
    UsoProducto,
)

User = get_user_model()


class ProductoModelTests(TestCase):
    def test_str_incluye_lote(self):
        producto = Producto(nombre="Agar", tipo=TipoProducto.REACTIVO, lote="A-12")
        self.assertEqual(str(producto), "Agar [Lote A-12]")

    def test_caducidad_solo_en_reactivos(self):
        hoy = timezone.localdate()
        reactivo = Producto(nombre="Agar", tipo=TipoProducto.REACTIVO, caducidad=hoy + timedelta(days=5))
        reactivo.clean()

        equipo = Producto(nombre="Centrífuga", tipo=TipoProducto.EQUIPO, caducidad=hoy)
        with self.assertRaises(ValidationError) as ctx:
            equipo.clean()
        self.assertIn("caducidad", ctx.exception.message_dict)

    def test_existencia_no_puede_ser_negativa(self):
        producto = Producto.objects.create(
            nombre="Agar",
            tipo=TipoProducto.REACTIVO,
            existencia_actual=1,
        )
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Producto.objects.filter(pk=producto.pk).update(existencia_actual=-1)


class MovimientoInmutableTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="auditor", password="password123")
        self.producto = Producto.objects.create(
            nombre="Matraz",
            tipo=TipoProducto.MATERIAL,
            existencia_actual=3,
        )
        self.movimiento = Movimiento.objects.create(
            producto=self.producto,
            usuario=self.user,
            tipo=TipoMovimiento.ENTRADA,
            cantidad=3,
        )

    def test_no_se_puede_modificar(self):
        self.movimiento.cantidad = 30
        with self.assertRaises(MovimientoInmutableError):
            self.movimiento.save()

    def test_no_se_puede_eliminar(self):
        with self.assertRaises(MovimientoInmutableError):
            self.movimiento.delete()

    def test_no_se_permiten_operaciones_masivas(self):
        with self.assertRaises(MovimientoInmutableError):
            Movimiento.objects.filter(pk=self.movimiento.pk).update(cantidad=0)
        with self.assertRaises(MovimientoInmutableError):
            Movimiento.objects.all().delete()

        self.movimiento.refresh_from_db()
        self.assertEqual(self.movimiento.cantidad, 3)

    def test_motivo_solo_en_salidas(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Movimiento.objects.create(
                    producto=self.producto,
                    usuario=self.user,
                    tipo=TipoMovimiento.ENTRADA,
                    motivo=MotivoSalida.INCIDENCIA,
                    cantidad=1,
                )

    def test_producto_con_movimientos_no_se_puede_borrar(self):
        with self.assertRaises(ProtectedError):
            self.producto.delete()


class UsoProductoModelTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="tecnico", password="password123")
        self.producto = Producto.objects.create(
            nombre="Microscopio",
            tipo=TipoProducto.EQUIPO,
            existencia_actual=1,
        )

    def crear_uso(self):
        movimiento = Movimiento.objects.create(
            producto=self.producto,
            usuario=self.user,
            tipo=TipoMovimiento.SALIDA,
            motivo=MotivoSalida.INICIAR_USO,
            cantidad=0,
        )
        return UsoProducto.objects.create(
            producto=self.producto,
            usuario=self.user,
            fecha_inicio=movimiento.fecha_movimiento,
            movimiento_inicio=movimiento,
        )

    def test_solo_un_uso_abierto_por_producto(self):
        self.crear_uso()
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                self.crear_uso()

    def test_duracion(self):
        uso = self.crear_uso()
        self.assertEqual(self.producto.uso_abierto, uso)
        self.assertIsNone(uso.duracion)

        uso.fecha_fin = uso.fecha_inicio + timedelta(hours=2)
        self.assertEqual(uso.duracion, timedelta(hours=2))
