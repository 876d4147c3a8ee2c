import logging

logger = logging.getLogger(__name__)

PAGEHIDE = "pagehide"


class PageLifecycle:
    """Teardown signal for one client page.

    Close, navigation and reload all look the same here: the page is going
    away and handlers get one last chance to say so. Handlers must not block.
    """

    def __init__(self):
        self._handlers = {}
        self.torn_down = False

    def on(self, event, handler):
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event, handler):
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event, *args, **kw):
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(*args, **kw)
            except Exception:
                logger.exception("exception in %s handler", event)

    def teardown(self):
        if self.torn_down:
            return
        self.torn_down = True
        self.emit(PAGEHIDE)
