"""Persona service.

Personas carry the tone/context settings injected into analysis prompts.
A persona referenced by any keyword rule cannot be deleted; the mapper event
in redwatch_core.domain.models enforces that for every deletion path.
"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from redwatch_core.domain.models import Persona, PersonaInUseError, PersonaType


class PersonaService:
    """Service for managing personas."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: int,
        user_type: str,
        name: str,
        settings: Optional[dict[str, Any]] = None,
    ) -> Persona:
        """Create a persona.

        Raises:
            ValueError: If user_type is not a known PersonaType.
        """
        if user_type not in PersonaType.values():
            raise ValueError(f"Unknown persona type: {user_type}")

        persona = Persona(
            user_id=user_id,
            user_type=user_type,
            name=name,
            settings=settings or {},
        )
        self.db.add(persona)
        self.db.commit()
        self.db.refresh(persona)
        return persona

    def get(self, persona_id: int) -> Optional[Persona]:
        return self.db.get(Persona, persona_id)

    def list_for_user(self, user_id: int) -> list[Persona]:
        return (
            self.db.query(Persona)
            .filter(Persona.user_id == user_id)
            .order_by(Persona.id)
            .all()
        )

    def delete(self, persona_id: int) -> bool:
        """Delete a persona.

        Returns:
            True if deleted, False if not found.

        Raises:
            PersonaInUseError: If keyword rules still reference the persona.
        """
        persona = self.get(persona_id)
        if persona is None:
            return False

        self.db.delete(persona)
        try:
            self.db.commit()
        except PersonaInUseError:
            self.db.rollback()
            raise
        return True
