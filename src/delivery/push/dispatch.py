"""Best-effort push fan-out to every device a customer registered.

Delivery problems never propagate: a token the transport reports as
permanently invalid is pruned from the customer, any other failure is
logged and the token is kept.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from delivery.customer.customer import Customer
from delivery.push import get_push
from delivery.push.port import PushStatus

logger = structlog.get_logger(__name__)


def notify_customer(customer_id, title: str, body: str, data: dict | None = None) -> int:
    """Push ``title``/``body`` to all of the customer's devices.

    Returns the number of devices the transport accepted the message for.
    """
    repo = current_domain.repository_for(Customer)
    try:
        customer = repo.get(str(customer_id))
    except ObjectNotFoundError:
        logger.warning("Customer not found, skipping push", customer_id=str(customer_id))
        return 0

    adapter = get_push()
    delivered = 0
    stale = []

    for token in customer.tokens:
        try:
            result = adapter.send(device_token=token, title=title, body=body, data=data)
        except Exception as exc:
            logger.error("Push dispatch raised", customer_id=str(customer_id), error=str(exc))
            continue

        if result.status == PushStatus.SENT:
            delivered += 1
        elif result.status == PushStatus.INVALID_TOKEN:
            stale.append(token)
        else:
            logger.warning("Push delivery failed", customer_id=str(customer_id), error=result.error)

    if stale:
        customer.prune_device_tokens(stale)
        repo.add(customer)
        logger.info("Pruned invalid device tokens", customer_id=str(customer_id), count=len(stale))

    return delivered
