"""Telemetry module: live fan-out, session recordings and replay."""

from lander.telemetry.channels import LiveChannel, MemoryChannel, Subscriber, UdpChannel
from lander.telemetry.recording import RecordingWriter, recording_name
from lander.telemetry.replay import SessionRecording, list_recordings, read_recording
from lander.telemetry.schema import CHANNEL, encode_snapshot, message_to_snapshot, snapshot_to_message
from lander.telemetry.sink import TelemetrySink

__all__ = [
    "CHANNEL",
    "LiveChannel",
    "MemoryChannel",
    "RecordingWriter",
    "SessionRecording",
    "Subscriber",
    "TelemetrySink",
    "UdpChannel",
    "encode_snapshot",
    "list_recordings",
    "message_to_snapshot",
    "read_recording",
    "recording_name",
    "snapshot_to_message",
]
