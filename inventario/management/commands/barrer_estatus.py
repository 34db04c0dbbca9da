from datetime import date

from django.core.management.base import BaseCommand, CommandError

from inventario.services.barrido import actualizar_estatus_productos


class Command(BaseCommand):
    help = "Recalcula el estatus de los productos (caducidad y stock). Pensado para cron."

    def add_arguments(self, parser):
        parser.add_argument(
            "--fecha",
            help="Fecha de referencia AAAA-MM-DD (por defecto, hoy).",
        )

    def handle(self, *args, **options):
        hoy = None
        if options.get("fecha"):
            try:
                hoy = date.fromisoformat(options["fecha"])
            except ValueError:
                raise CommandError(f"Fecha inválida: {options['fecha']!r}. Use AAAA-MM-DD.")

        self.stdout.write(self.style.WARNING("Iniciando barrido de estatus..."))
        actualizados = actualizar_estatus_productos(hoy=hoy)
        self.stdout.write(
            self.style.SUCCESS(f"Barrido terminado: {actualizados} productos actualizados.")
        )
