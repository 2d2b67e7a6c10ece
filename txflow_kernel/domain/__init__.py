"""Pure domain layer: lifecycle table, flags, DTOs, clock and ports."""
