"""Notifications feature: transactional email"""
