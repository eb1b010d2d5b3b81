from __future__ import annotations

from coach_chat.domain.entities.profile import Profile
from coach_chat.domain.value_objects.enums import ParticipantRole
from coach_chat.infrastructure.db.models.profile import ProfileModel


def model_to_entity(model: ProfileModel) -> Profile:
    try:
        role = ParticipantRole(model.role)
    except ValueError:
        role = ParticipantRole.CLIENT
    return Profile(
        id=model.id,
        display_name=model.display_name,
        avatar_url=model.avatar_url,
        role=role,
    )
