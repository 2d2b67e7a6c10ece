"""Pure calculation engines: no sessions, no clocks, no I/O."""
