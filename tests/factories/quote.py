"""
Quote line item test factory.
"""

import factory
from faker import Faker

fake = Faker()


class LineItemFactory(factory.Factory):
    """Line item payload as sent by API callers."""

    class Meta:
        model = dict

    name = factory.LazyFunction(lambda: fake.bs().capitalize()[:255])
    description = factory.LazyFunction(fake.sentence)
    quantity = factory.LazyFunction(lambda: fake.random_int(min=1, max=5))
    unit_price = factory.LazyFunction(lambda: float(fake.random_int(min=10, max=500)))
