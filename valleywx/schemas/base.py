"""
Base Pydantic schemas.

Response schemas are built straight from ORM rows and from the service's
dataclasses, so attribute access is enabled for all of them.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All other schemas should inherit from this class.
    """

    model_config = ConfigDict(from_attributes=True)
