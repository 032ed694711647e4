"""
Client test factory.

Generates client directory rows as plain dicts, ready for ``Client(**data)``.
"""

import uuid

import factory
from faker import Faker

fake = Faker()


class ClientFactory(factory.Factory):
    """
    Factory for generating Client test data.

    Usage:
        client = ClientFactory()
        client = ClientFactory(business_name=None)
    """

    class Meta:
        model = dict

    id = factory.LazyFunction(lambda: str(uuid.uuid4()))
    full_name = factory.LazyFunction(fake.name)
    business_name = factory.LazyFunction(fake.company)
    address = factory.LazyFunction(fake.street_address)
    phone = factory.LazyFunction(lambda: fake.phone_number()[:20])
    email = factory.LazyFunction(lambda: fake.email().lower())
    tax_id = factory.LazyFunction(lambda: fake.numerify("#########"))
