from datetime import date, timedelta

from django.test import SimpleTestCase, override_settings

from inventario.models import EstatusProducto, Producto, TipoProducto
from inventario.services.estatus import resolver_estatus, resolver_estatus_producto

HOY = date(2025, 3, 1)


class ResolverEstatusTests(SimpleTestCase):
    def resolver(self, **kwargs):
        datos = {
            "tipo": TipoProducto.MATERIAL,
            "existencia": 10,
            "stock_minimo": 5,
            "hoy": HOY,
        }
        datos.update(kwargs)
        return resolver_estatus(**datos)

    def test_disponible_con_stock_sobre_minimo(self):
        self.assertEqual(self.resolver(), EstatusProducto.DISPONIBLE)

    def test_bajo_stock_en_el_minimo_o_por_debajo(self):
        self.assertEqual(self.resolver(existencia=5), EstatusProducto.BAJO_STOCK)
        self.assertEqual(self.resolver(existencia=2), EstatusProducto.BAJO_STOCK)

    def test_sin_stock_con_existencia_cero(self):
        self.assertEqual(self.resolver(existencia=0), EstatusProducto.SIN_STOCK)

    def test_equipo_nunca_queda_bajo_stock(self):
        estatus = self.resolver(tipo=TipoProducto.EQUIPO, existencia=1, stock_minimo=5)
        self.assertEqual(estatus, EstatusProducto.DISPONIBLE)

    def test_reactivo_proximo_a_caducar(self):
        estatus = self.resolver(
            tipo=TipoProducto.REACTIVO,
            caducidad=HOY + timedelta(days=10),
        )
        self.assertEqual(estatus, EstatusProducto.PROXIMO_A_CADUCAR)

    def test_limite_de_ventana_de_aviso_es_inclusivo(self):
        en_limite = self.resolver(tipo=TipoProducto.REACTIVO, caducidad=HOY + timedelta(days=15))
        fuera = self.resolver(tipo=TipoProducto.REACTIVO, caducidad=HOY + timedelta(days=16))
        self.assertEqual(en_limite, EstatusProducto.PROXIMO_A_CADUCAR)
        self.assertEqual(fuera, EstatusProducto.DISPONIBLE)

    def test_reactivo_caducado(self):
        estatus = self.resolver(tipo=TipoProducto.REACTIVO, caducidad=HOY - timedelta(days=1))
        self.assertEqual(estatus, EstatusProducto.CADUCADO)

    def test_caduca_hoy_es_proximo_a_caducar(self):
        estatus = self.resolver(tipo=TipoProducto.REACTIVO, caducidad=HOY)
        self.assertEqual(estatus, EstatusProducto.PROXIMO_A_CADUCAR)

    def test_caducidad_tiene_prioridad_sobre_stock(self):
        estatus = self.resolver(
            tipo=TipoProducto.REACTIVO,
            existencia=0,
            caducidad=HOY - timedelta(days=3),
        )
        self.assertEqual(estatus, EstatusProducto.CADUCADO)

    def test_reactivo_sin_caducidad_se_evalua_por_stock(self):
        estatus = self.resolver(tipo=TipoProducto.REACTIVO, existencia=3)
        self.assertEqual(estatus, EstatusProducto.BAJO_STOCK)

    def test_caducidad_se_ignora_en_no_reactivos(self):
        estatus = self.resolver(caducidad=HOY - timedelta(days=30))
        self.assertEqual(estatus, EstatusProducto.DISPONIBLE)

    def test_estatus_manuales_se_conservan(self):
        for manual in (EstatusProducto.EN_USO, EstatusProducto.BAJA):
            with self.subTest(estatus=manual):
                estatus = self.resolver(
                    tipo=TipoProducto.REACTIVO,
                    existencia=0,
                    caducidad=HOY - timedelta(days=1),
                    estatus_actual=manual,
                )
                self.assertEqual(estatus, manual)

    def test_estatus_no_manual_se_recalcula(self):
        estatus = self.resolver(existencia=2, estatus_actual=EstatusProducto.DISPONIBLE)
        self.assertEqual(estatus, EstatusProducto.BAJO_STOCK)

    def test_ventana_de_aviso_configurable(self):
        estatus = self.resolver(
            tipo=TipoProducto.REACTIVO,
            caducidad=HOY + timedelta(days=20),
            dias_aviso=30,
        )
        self.assertEqual(estatus, EstatusProducto.PROXIMO_A_CADUCAR)


class ResolverEstatusProductoTests(SimpleTestCase):
    def test_usa_los_datos_de_la_instancia(self):
        producto = Producto(
            nombre="Etanol",
            tipo=TipoProducto.REACTIVO,
            existencia_actual=4,
            stock_minimo=2,
            caducidad=HOY + timedelta(days=5),
        )
        self.assertEqual(
            resolver_estatus_producto(producto, hoy=HOY),
            EstatusProducto.PROXIMO_A_CADUCAR,
        )

    def test_respetar_manual_false_libera_en_uso(self):
        producto = Producto(
            nombre="Microscopio",
            tipo=TipoProducto.EQUIPO,
            existencia_actual=1,
            stock_minimo=0,
            estatus=EstatusProducto.EN_USO,
        )
        self.assertEqual(resolver_estatus_producto(producto, hoy=HOY), EstatusProducto.EN_USO)
        self.assertEqual(
            resolver_estatus_producto(producto, hoy=HOY, respetar_manual=False),
            EstatusProducto.DISPONIBLE,
        )

    @override_settings(INVENTARIO_DIAS_AVISO_CADUCIDAD=3)
    def test_lee_la_ventana_de_aviso_de_settings(self):
        producto = Producto(
            nombre="Acetona",
            tipo=TipoProducto.REACTIVO,
            existencia_actual=10,
            stock_minimo=1,
            caducidad=HOY + timedelta(days=10),
        )
        self.assertEqual(resolver_estatus_producto(producto, hoy=HOY), EstatusProducto.DISPONIBLE)
