"""Tabsync: browser session sync backend"""
