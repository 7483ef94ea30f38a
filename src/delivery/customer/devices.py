"""Device token registration — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery.customer.customer import Customer
from delivery.domain import delivery


@delivery.command(part_of="Customer")
class RegisterDeviceToken:
    customer_id = Identifier(required=True)
    token = String(required=True, max_length=500)


@delivery.command_handler(part_of=Customer)
class DeviceTokenHandler:
    @handle(RegisterDeviceToken)
    def register_device_token(self, command):
        repo = current_domain.repository_for(Customer)
        customer = repo.get(command.customer_id)
        customer.register_device_token(command.token)
        repo.add(customer)
