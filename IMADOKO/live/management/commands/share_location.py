import asyncio

from django.core.management.base import BaseCommand, CommandError

from live.presence import Coord, StaticPositionProvider
from live.runtime import build_guest_session, build_host_session


class Command(BaseCommand):
    help = "Comparte una ubicación fija como host (o como guest de un link) desde la terminal."

    def add_arguments(self, parser):
        parser.add_argument("--role", choices=["host", "guest"], default="host")
        parser.add_argument("--token", help="Token del link (obligatorio para guest).")
        parser.add_argument("--lat", type=float, required=True)
        parser.add_argument("--lng", type=float, required=True)
        parser.add_argument("--duration", type=float, default=60.0,
                            help="Segundos antes de salir (0 = hasta Ctrl+C).")
        parser.add_argument("--stop", action="store_true",
                            help="Al salir, detener la sesión en vez de solo cerrar la página.")
        parser.add_argument("--verbose", action="store_true", help="Imprime cada cambio de vista.")

    def handle(self, *args, **opts):
        if opts["role"] == "guest" and not opts["token"]:
            raise CommandError("--token es obligatorio con --role guest")
        try:
            positions = StaticPositionProvider(opts["lat"], opts["lng"])
        except ValueError as e:
            raise CommandError(str(e))
        try:
            asyncio.run(self._run(positions, opts))
        except KeyboardInterrupt:
            self.stdout.write("Interrumpido.")

    async def _run(self, positions, opts):
        if opts["role"] == "host":
            session = build_host_session(positions)
        else:
            session = build_guest_session(opts["token"], positions)

        if opts["verbose"]:
            session.on_change(lambda view: self.stdout.write(f"[VISTA] {_fmt(view)}"))

        try:
            # -----------------------------------------
            # 1) ABRIR (restaurar si había sesión)
            # -----------------------------------------
            if opts["role"] == "host":
                token = await session.open()
                if token:
                    self.stdout.write(f"[HOST] sesión restaurada {token}")
                else:
                    token = await session.start_sharing()
                    self.stdout.write(f"[HOST] sesión nueva {token}")
                self.stdout.write(f"[HOST] link: {session.share_path}")
            else:
                await session.open()
                await session.start_sharing()
                self.stdout.write(f"[GUEST] compartiendo en {session.token}")

            # -----------------------------------------
            # 2) COMPARTIR hasta que se acabe el tiempo
            # -----------------------------------------
            if opts["duration"] > 0:
                await asyncio.sleep(opts["duration"])
            else:
                await asyncio.Event().wait()
        finally:
            # -----------------------------------------
            # 3) SALIR: detener o simplemente "cerrar la pestaña"
            # -----------------------------------------
            if opts["stop"]:
                await session.stop_sharing()
                self.stdout.write(self.style.SUCCESS("Compartir detenido."))
            else:
                session.teardown()
                self.stdout.write(self.style.SUCCESS("Página cerrada (señal de salida enviada)."))
            # nada queda corriendo en el loop al salir
            session.scheduler.cancel_all()


def _fmt(view):
    def c(coord: Coord):
        return f"({coord.lat:.5f},{coord.lng:.5f})" if coord else "-"
    return f"status={view.status.value} host={c(view.host_coord)} guest={c(view.guest_coord)}"
