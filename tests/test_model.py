from rtefmt.model import (
    NUMBER_OF_FILTER_BITS,
    DecoderState,
    EnumEntry,
    EnumType,
    MessageDefinition,
    MessageType,
    ParseHandle,
)


def test_add_enum_starts_after_filter_slots():
    state = DecoderState()
    index = state.add_enum(EnumEntry("M_A", EnumType.MEMO))
    assert index == NUMBER_OF_FILTER_BITS
    assert state.enums_found == NUMBER_OF_FILTER_BITS + 1


def test_find_enum_index_matches_name_and_type():
    state = DecoderState()
    index = state.add_enum(EnumEntry("M_A", EnumType.MEMO))
    assert state.find_enum_index("M_A", EnumType.MEMO) == index
    assert state.find_enum_index("M_A", EnumType.OUT_FILE) is None
    assert state.find_enum_index("M_B", EnumType.MEMO) is None


def test_filters_are_not_searched():
    state = DecoderState()
    state.enums[0] = EnumEntry("F_X", EnumType.FILTER)
    assert state.find_enum_index("F_X", EnumType.FILTER) is None


def test_assign_fmt_id_is_aligned_and_consecutive():
    state = DecoderState()
    msg = MessageDefinition(MessageType.MSG0_4)
    first = state.assign_fmt_id(1, msg)
    second = state.assign_fmt_id(4, msg)
    assert first == 0
    assert second % 4 == 0 and second >= 1
    assert state.fmt_ids_defined == second + 4
    assert all(state.fmt[i] is msg for i in range(second, second + 4))


def test_assign_fmt_id_exhausted():
    state = DecoderState(topmost_fmt_id=16)
    msg = MessageDefinition(MessageType.MSGX)
    assert state.assign_fmt_id(16, msg) == 0
    assert state.assign_fmt_id(1, msg) is None


def test_find_message():
    state = DecoderState()
    msg = MessageDefinition(MessageType.MSGN, message_name="MSGN_TEST")
    fmt_id = state.assign_fmt_id(16, msg)
    assert state.find_message("MSGN_TEST") == fmt_id
    assert state.find_message("MSG_NONE") is None


def test_error_target_prefers_parent():
    state = DecoderState()
    parent = ParseHandle(state)
    child = ParseHandle(state, parent=parent)
    assert child.error_target is parent
    assert parent.error_target is parent