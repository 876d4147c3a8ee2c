import logging

from .types import Role

logger = logging.getLogger(__name__)


class SessionRestorer:
    """Picks a persisted session back up at startup.

    The immediate beat is what makes a reload invisible to the other side:
    the reload's own departure beacon set status=stopped, and this beat sets
    it back to active before the peer's grace period runs out.
    """

    def __init__(self, issuer):
        self.issuer = issuer

    async def restore(self, role, publisher_factory, scope=None):
        role = Role(role)
        token = self.issuer.restore(role, scope)
        if not token:
            return None
        logger.info("resuming %s session %s", role.value, token)
        publisher = publisher_factory(token)
        await publisher.publish()
        publisher.start(immediate=False)
        return publisher
