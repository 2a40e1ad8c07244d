from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

KEY_TYPES = ("posting", "active")


@dataclass(frozen=True, slots=True)
class Operation:
    type: str
    value: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value}

    def to_pair(self) -> list[Any]:
        return [self.type, self.value]


@dataclass(frozen=True, slots=True)
class PayoutOptions:
    decline_rewards: bool = False
    max_payout: str | None = None
    beneficiaries_json: str | None = None
    burn_rewards: bool = False

    @property
    def requested(self) -> bool:
        return bool(
            self.decline_rewards or self.max_payout or self.beneficiaries_json or self.burn_rewards
        )


@dataclass(frozen=True, slots=True)
class PublishOptions:
    permlink: str
    body: str
    title: str = ""
    parent_author: str = ""
    parent_permlink: str = ""
    community: str | None = None
    tags: str = ""
    metadata_json: str = "{}"
    payout: PayoutOptions = field(default_factory=PayoutOptions)


@dataclass(frozen=True, slots=True)
class EditOptions:
    body: str
    title: str | None = None
    tags: str | None = None


@dataclass(frozen=True, slots=True)
class CustomJsonOptions:
    id: str
    json: str
    required_posting: str = ""
    required_active: str = ""


@dataclass(frozen=True, slots=True)
class ProfileUpdate:
    name: str | None = None
    about: str | None = None
    profile_image: str | None = None
    cover_image: str | None = None
    website: str | None = None
    location: str | None = None

    def fields(self) -> dict[str, str]:
        candidates = {
            "name": self.name,
            "about": self.about,
            "profile_image": self.profile_image,
            "cover_image": self.cover_image,
            "website": self.website,
            "location": self.location,
        }
        return {key: value for key, value in candidates.items() if value}
