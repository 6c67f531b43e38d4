"""Messaging semantic convention attribute names (semconv 1.10)."""

MESSAGING_DESTINATION_KIND = "messaging.destination_kind"
MESSAGING_DESTINATION = "messaging.destination"
MESSAGING_OPERATION = "messaging.operation"
MESSAGING_MESSAGE_ID = "messaging.message_id"
MESSAGE_TYPE = "message.type"
ERROR_TYPE = "error.type"

DESTINATION_KIND_TOPIC = "topic"
OPERATION_PROCESS = "process"
OPERATION_RECEIVE = "receive"
