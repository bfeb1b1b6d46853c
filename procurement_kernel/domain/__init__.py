"""Pure domain layer: value objects, status lifecycle, numbering rules, DTOs."""
