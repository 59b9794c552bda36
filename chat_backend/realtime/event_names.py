"""Wire names of every realtime event, inbound and outbound."""

# Client -> server
JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
MESSAGE_DELIVERED = "message-delivered"
MESSAGE_READ = "message-read"
TYPING_START = "typing-start"
TYPING_STOP = "typing-stop"

# Server -> client
MESSAGE_NEW = "message-new"
MESSAGE_UPDATED = "message-updated"
MESSAGE_DELETED = "message-deleted"
USER_ONLINE = "user-online"
USER_OFFLINE = "user-offline"
