from django.contrib import admin, messages

from .models import Movimiento, Producto, UsoProducto
from .services.barrido import actualizar_estatus_productos


admin.site.site_header = "Administración de Inventario de Laboratorio"
admin.site.site_title = "Inventario de Laboratorio"


@admin.action(description="Recalcular estatus de los productos seleccionados")
def recalcular_estatus(modeladmin, request, queryset):
    """
    Acción admin: corre el barrido de estatus solo sobre la selección.
    """
    actualizados = actualizar_estatus_productos(productos=queryset)
    if actualizados:
        messages.success(request, f"{actualizados} productos cambiaron de estatus.")
    else:
        messages.info(request, "Todos los estatus ya estaban al día.")


class MovimientoInline(admin.TabularInline):
    model = Movimiento
    extra = 0
    can_delete = False
    fields = ("fecha_movimiento", "tipo", "motivo", "cantidad", "usuario", "descripcion_adicional")
    readonly_fields = fields
    ordering = ("-fecha_movimiento", "-id")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Producto)
class ProductoAdmin(admin.ModelAdmin):
    list_display = (
        "nombre",
        "lote",
        "tipo",
        "existencia_actual",
        "stock_minimo",
        "estatus",
        "caducidad",
        "prioridad",
    )
    list_filter = ("tipo", "estatus", "prioridad")
    search_fields = ("nombre", "marca", "lote")
    # Existencia y estatus solo cambian por movimientos
    readonly_fields = ("existencia_actual", "estatus", "created_at", "updated_at")
    inlines = [MovimientoInline]
    actions = [recalcular_estatus]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Movimiento)
class MovimientoAdmin(admin.ModelAdmin):
    list_display = (
        "fecha_movimiento",
        "producto",
        "tipo",
        "motivo",
        "cantidad",
        "usuario",
    )
    list_filter = ("tipo", "motivo", "fecha_movimiento")
    search_fields = ("producto__nombre", "producto__lote", "descripcion_adicional")
    date_hierarchy = "fecha_movimiento"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(UsoProducto)
class UsoProductoAdmin(admin.ModelAdmin):
    list_display = ("producto", "usuario", "fecha_inicio", "fecha_fin")
    list_filter = ("fecha_fin",)
    search_fields = ("producto__nombre", "usuario__username")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
