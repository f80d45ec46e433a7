"""Pure domain layer: accounts, journal value objects, fiscal calendar, clock."""
