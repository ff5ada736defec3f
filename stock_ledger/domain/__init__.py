"""Pure domain layer: enums, transition table, DTOs, projector, clock."""
