"""Outbound chat events published from the HTTP side.

Each helper builds a wire payload and hands it to the running gateway; no
Socket.IO handlers live here.
"""
