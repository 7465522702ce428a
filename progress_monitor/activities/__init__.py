"""Pure pipeline steps: change classification, historical sampling, backfill."""
