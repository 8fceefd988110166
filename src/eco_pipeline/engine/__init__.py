"""Pipeline engine: run context, providers, policy, phases, heal and orchestration."""
