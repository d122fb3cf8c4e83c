"""Realtime infrastructure (Socket.IO, etc).

This package holds cross-domain realtime primitives so attendance, leave,
chat, notifications, and future features can share one socket server.
"""
