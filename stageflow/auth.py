"""Read-only session context handed to the engine."""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel

from .contracts import GeoPoint


class Vehicle(BaseModel):
    id: int
    vehicle_no: str = ""
    driver_name: str = ""
    whs_code: str = ""


class ActorContext(BaseModel):
    """Who submits a transition and from where."""

    vehicle_id: Optional[int] = None
    user_id: Optional[int] = None
    location: Optional[GeoPoint] = None


class AuthContext(BaseModel):
    """Session values the client and engine read but never change.

    The token is stored with the type the login endpoint returned, but the
    client always sends it as ``Bearer``.
    """

    access_token: Optional[str] = None
    token_type: str = "bearer"
    base_url: str = ""
    user_id: Optional[int] = None
    vehicle: Optional[Vehicle] = None
    location: Optional[GeoPoint] = None

    @classmethod
    def from_env(cls) -> "AuthContext":
        vehicle_id = os.getenv("STAGEFLOW_VEHICLE_ID")
        user_id = os.getenv("STAGEFLOW_USER_ID")
        return cls(
            access_token=os.getenv("STAGEFLOW_TOKEN") or None,
            base_url=os.getenv("STAGEFLOW_BASE_URL", ""),
            user_id=int(user_id) if user_id else None,
            vehicle=Vehicle(id=int(vehicle_id)) if vehicle_id else None,
        )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def token_provider(self) -> Optional[str]:
        return self.access_token

    def actor(self) -> ActorContext:
        return ActorContext(
            vehicle_id=self.vehicle.id if self.vehicle else None,
            user_id=self.user_id,
            location=self.location,
        )
