"""Billing feature: subscription status, gateway reconciliation and payment methods"""
