"""Realtime infrastructure (Socket.IO presence, rooms and live delivery).

The REST API and the socket handlers share one `RealtimeGateway`, owned by the
realtime app config and created when Django starts.
"""
