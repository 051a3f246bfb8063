"""AI pipeline: prompts, provider access, parsing and orchestration."""
