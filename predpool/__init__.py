"""Prediction-pool scoring and ledger service."""
