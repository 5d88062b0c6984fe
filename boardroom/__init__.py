"""AI Board: a secretary, four reviewers and a strategist deliberate on a decision memo."""
