"""Protobuf wire messages for the capture log.

The message types are declared here as descriptors and turned into classes by
the protobuf runtime, so no generated ``_pb2`` modules are needed. Only the
fields the evaluator reads are declared; anything else on the wire is kept as
unknown fields.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError

from autoref_eval.core.errors import CodecError
from autoref_eval.eval.schemas import Command, LogRecord

_PACKAGE = "autoref_eval.wire"
_FD = descriptor_pb2.FieldDescriptorProto


def _add_field(message: descriptor_pb2.DescriptorProto, name: str, number: int, field_type: int) -> None:
    message.field.add(name=name, number=number, type=field_type, label=_FD.LABEL_OPTIONAL)


def _build_pool() -> descriptor_pool.DescriptorPool:
    proto = descriptor_pb2.FileDescriptorProto(
        name="autoref_eval/wire.proto",
        package=_PACKAGE,
        syntax="proto2",
    )

    wrapper = proto.message_type.add(name="UDPMessageWrapper")
    _add_field(wrapper, "address", 1, _FD.TYPE_STRING)
    _add_field(wrapper, "port", 2, _FD.TYPE_UINT32)
    _add_field(wrapper, "timestamp", 3, _FD.TYPE_UINT64)
    _add_field(wrapper, "data", 4, _FD.TYPE_BYTES)

    referee = proto.message_type.add(name="SSL_Referee")
    _add_field(referee, "packet_timestamp", 1, _FD.TYPE_UINT64)
    _add_field(referee, "stage", 2, _FD.TYPE_INT32)
    _add_field(referee, "stage_time_left", 3, _FD.TYPE_SINT32)
    _add_field(referee, "command", 4, _FD.TYPE_INT32)
    _add_field(referee, "command_counter", 5, _FD.TYPE_UINT32)
    _add_field(referee, "command_timestamp", 6, _FD.TYPE_UINT64)

    # Vision frames are only checked for wire-format validity.
    proto.message_type.add(name="SSL_WrapperPacket")

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(proto.SerializeToString())
    return pool


_POOL = _build_pool()


def _message_class(name: str):
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{_PACKAGE}.{name}"))


UDPMessageWrapper = _message_class("UDPMessageWrapper")
SSLReferee = _message_class("SSL_Referee")
SSLWrapperPacket = _message_class("SSL_WrapperPacket")


def _parse(message_cls, payload: bytes, what: str):
    message = message_cls()
    try:
        message.ParseFromString(payload)
    except DecodeError as exc:
        raise CodecError(f"malformed {what} ({len(payload)} bytes): {exc}") from exc
    return message


def decode_envelope(payload: bytes) -> LogRecord:
    message = _parse(UDPMessageWrapper, payload, "envelope")
    if not message.HasField("address") or not message.HasField("port"):
        raise CodecError("envelope without source address or port")
    return LogRecord(
        address=message.address,
        port=int(message.port),
        timestamp=int(message.timestamp),
        data=bytes(message.data),
    )


def encode_envelope(record: LogRecord) -> bytes:
    message = UDPMessageWrapper(
        address=record.address,
        port=record.port,
        timestamp=record.timestamp,
        data=record.data,
    )
    return message.SerializeToString()


def decode_referee(payload: bytes, source_id: int) -> Command:
    message = _parse(SSLReferee, payload, "referee message")
    if not message.HasField("command") or not message.HasField("command_counter"):
        raise CodecError("referee message without command or command counter")
    return Command(
        source_id=source_id,
        sequence_counter=int(message.command_counter),
        command_timestamp=int(message.command_timestamp),
        code=int(message.command),
    )


def encode_referee(
    command: int,
    command_counter: int,
    command_timestamp: int,
    packet_timestamp: int = 0,
) -> bytes:
    message = SSLReferee(
        packet_timestamp=packet_timestamp or command_timestamp,
        stage=0,
        command=int(command),
        command_counter=command_counter,
        command_timestamp=command_timestamp,
    )
    return message.SerializeToString()


def validate_vision(payload: bytes) -> None:
    _parse(SSLWrapperPacket, payload, "vision packet")
