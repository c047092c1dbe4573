"""Format interaction messages as a conversation for display and evaluation."""
from typing import Dict, Any, List, Sequence
from qa_center.interactions.channels import (
    InteractionChannel,
    channel_from_value,
    display_title,
    has_threaded_bodies,
)
from qa_center.interactions.email_thread import split_email_thread
from qa_center.models.interaction import InteractionMessage, DIRECTION_INBOUND


_ATTACHMENT_LABELS = {
    "image": "[Image shared]",
    "video": "[Video shared]",
    "audio": "[Voice message]",
    "document": "[Document shared]",
    "location": "[Location shared]",
}


def determine_speaker(message: InteractionMessage) -> Dict[str, str]:
    """Speaker id, role and name. Explicit author role wins, else direction decides."""
    if message.author_role:
        return {
            "id": f"{message.author_role}_{message.author_id or 'unknown'}",
            "role": message.author_role,
            "name": message.author_name or "Unknown",
        }
    if message.direction == DIRECTION_INBOUND:
        return {
            "id": f"customer_{message.author_id or 'unknown'}",
            "role": "customer",
            "name": message.author_name or "Customer",
        }
    return {
        "id": f"agent_{message.author_id or 'unknown'}",
        "role": "agent",
        "name": message.author_name or "Agent",
    }


def describe_multimedia(attachments: List[dict]) -> str:
    if not attachments:
        return "[Multimedia message]"
    return " ".join(
        _ATTACHMENT_LABELS.get(item.get("type"), f"[{item.get('type') or 'File'} shared]")
        for item in attachments
    )


def message_text(message: InteractionMessage) -> str:
    if message.message_type == "multimedia":
        return describe_multimedia(message.attachments)
    if message.text:
        return message.text
    return "[Message content not available]"


def conversation_stats(messages: Sequence[InteractionMessage]) -> Dict[str, int]:
    stats = {"totalMessages": len(messages), "customerMessages": 0, "agentMessages": 0, "multimediaMessages": 0}
    for message in messages:
        role = determine_speaker(message)["role"]
        if role == "customer":
            stats["customerMessages"] += 1
        elif role == "agent":
            stats["agentMessages"] += 1
        if message.message_type == "multimedia":
            stats["multimediaMessages"] += 1
    return stats


def format_conversation(messages: Sequence[InteractionMessage], channel: InteractionChannel) -> Dict[str, Any]:
    """
    Build ``{transcription, metadata}`` from messages in chronological order.

    Email entries carry the new reply and the quoted history separately.
    """
    transcription = []
    participants: List[str] = []
    channels: List[str] = []
    has_multimedia = False
    start = end = None

    for message in messages:
        if message.author_name and message.author_name not in participants:
            participants.append(message.author_name)
        if message.channel and message.channel not in channels:
            channels.append(message.channel)
        if message.attachments:
            has_multimedia = True
        if message.created_at:
            start = message.created_at if start is None or message.created_at < start else start
            end = message.created_at if end is None or message.created_at > end else end

        text = message_text(message)
        if not text.strip():
            continue

        speaker = determine_speaker(message)
        entry = {
            "timestamp": message.created_at.isoformat() if message.created_at else None,
            "channel": message.channel or "unknown",
            "speaker_id": speaker["id"],
            "speaker_role": speaker["role"],
            "speaker_name": speaker["name"],
            "original_text": text,
            "message_type": message.message_type or "text",
            "forwarded": message.forwarded,
            "attachments": message.attachments,
        }
        if has_threaded_bodies(channel):
            parts = split_email_thread(text)
            entry["subject"] = message.subject
            entry["reply_text"] = parts.reply
            entry["quoted_text"] = parts.quoted
        transcription.append(entry)

    return {
        "transcription": transcription,
        "metadata": {
            "totalMessages": len(messages),
            "participants": participants,
            "channels": channels,
            "hasMultimedia": has_multimedia,
            "timespan": {
                "start": start.isoformat() if start else None,
                "end": end.isoformat() if end else None,
            },
        },
    }


def messages_payload(interaction, messages: Sequence[InteractionMessage]) -> Dict[str, Any]:
    """Response body of the interaction messages endpoint."""
    channel = channel_from_value(interaction.channel)
    visible = [message for message in messages if not message.is_deleted]
    return {
        "interactionId": interaction.id,
        "channel": channel.value,
        "title": display_title(channel),
        "count": len(visible),
        "stats": conversation_stats(visible),
        "conversation": format_conversation(visible, channel),
    }
