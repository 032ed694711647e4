"""
Project and requirement test factories.
"""

import uuid

import factory
from faker import Faker

fake = Faker()


class ProjectFactory(factory.Factory):
    """Factory for Project rows. Pass client_id explicitly."""

    class Meta:
        model = dict

    id = factory.LazyFunction(lambda: str(uuid.uuid4()))
    client_id = None
    name = factory.LazyFunction(lambda: fake.catch_phrase()[:255])


class RequirementFactory(factory.Factory):
    """
    Factory for Requirement rows.

    Usage:
        req = RequirementFactory(project_id=project.id)
        req = RequirementFactory(project_id=project.id, estimated_hours=None)
    """

    class Meta:
        model = dict

    id = factory.LazyFunction(lambda: str(uuid.uuid4()))
    project_id = None
    position = factory.Sequence(lambda n: float(n))
    title = factory.LazyFunction(lambda: fake.sentence(nb_words=4).rstrip("."))
    description = factory.LazyFunction(fake.sentence)
    estimated_hours = factory.LazyFunction(
        lambda: float(fake.random_int(min=1, max=40))
    )
    status = "pending"


class ApprovedRequirementFactory(RequirementFactory):
    """Requirement already approved by the client."""

    status = "approved"
