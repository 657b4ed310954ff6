"""Review session core: change-set resolution, session state, orchestration."""
