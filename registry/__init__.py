"""Civil registry derived-state engine (sectoral profiles and household aggregates)."""
