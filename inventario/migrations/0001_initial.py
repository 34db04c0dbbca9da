import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Producto",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("nombre", models.CharField(max_length=200)),
                ("marca", models.CharField(blank=True, max_length=100)),
                ("lote", models.CharField(blank=True, help_text="Código de lote entregado por el proveedor o interno.", max_length=100)),
                ("tipo", models.CharField(choices=[("reactivo", "Reactivo"), ("equipo", "Equipo"), ("material", "Material")], max_length=20)),
                ("prioridad", models.CharField(choices=[("alta", "Alta"), ("media", "Media"), ("baja", "Baja")], default="media", max_length=10)),
                ("existencia_actual", models.PositiveIntegerField(default=0, help_text="Unidades disponibles de este lote.")),
                ("stock_minimo", models.PositiveIntegerField(default=0, help_text="Por debajo o igual a esta cantidad el lote se considera 'Bajo stock'.")),
                ("estatus", models.CharField(choices=[("disponible", "Disponible"), ("sin_stock", "Sin stock"), ("bajo_stock", "Bajo stock"), ("en_uso", "En uso"), ("baja", "Baja"), ("caducado", "Caducado"), ("proximo_a_caducar", "Próximo a caducar")], db_index=True, default="disponible", max_length=30)),
                ("caducidad", models.DateField(blank=True, help_text="Fecha de caducidad del reactivo (si aplica).", null=True)),
                ("presentacion", models.CharField(blank=True, help_text="Presentación del reactivo (ej: frasco 500 ml).", max_length=100)),
                ("fecha_ingreso", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "verbose_name": "Producto",
                "verbose_name_plural": "Productos",
                "ordering": ["fecha_ingreso", "id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("existencia_actual__gte", 0)), name="producto_existencia_no_negativa"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Movimiento",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tipo", models.CharField(choices=[("entrada", "Entrada"), ("salida", "Salida")], max_length=10)),
                ("motivo", models.CharField(blank=True, choices=[("iniciar_uso", "Iniciar uso"), ("finalizar_uso", "Finalizar uso"), ("incidencia", "Incidencia"), ("baja", "Baja")], help_text="Solo para salidas.", max_length=20, null=True)),
                ("cantidad", models.PositiveIntegerField(help_text="Cantidad efectivamente aplicada a la existencia.")),
                ("descripcion_adicional", models.TextField(blank=True)),
                ("fecha_movimiento", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("producto", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="movimientos", to="inventario.producto")),
                ("usuario", models.ForeignKey(help_text="Usuario que registró el movimiento.", on_delete=django.db.models.deletion.PROTECT, related_name="movimientos_inventario", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Movimiento de inventario",
                "verbose_name_plural": "Movimientos de inventario",
                "ordering": ["-fecha_movimiento", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("motivo__isnull", True), ("tipo", "entrada")),
                            models.Q(("motivo__isnull", False), ("tipo", "salida")),
                            _connector="OR",
                        ),
                        name="movimiento_motivo_solo_en_salidas",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="UsoProducto",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("fecha_inicio", models.DateTimeField()),
                ("fecha_fin", models.DateTimeField(blank=True, null=True)),
                ("movimiento_fin", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="uso_finalizado", to="inventario.movimiento")),
                ("movimiento_inicio", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="uso_iniciado", to="inventario.movimiento")),
                ("producto", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="usos", to="inventario.producto")),
                ("usuario", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="usos_producto", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Uso de producto",
                "verbose_name_plural": "Usos de producto",
                "ordering": ["-fecha_inicio", "-id"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("fecha_fin__isnull", True)), fields=("producto",), name="uq_uso_abierto_por_producto"),
                ],
            },
        ),
    ]
