# tests/arch/z80/test_decoder.py
"""
Z80 静的デコーダとデコードベクトルの単体テスト。
"""
import pytest

from retro_exec_unit.arch.z80.decode import DecodeVector, InstructionClass as C, OpcodeTable, MODE_CLASSES
from retro_exec_unit.arch.z80.decoder import decode_opcode

# @intent:test_suite オペコード表ごとの命令クラス割り当てとデコードベクトルのパック形式の検証。


@pytest.mark.parametrize("opcode, expected", [
    (0x00, C.NOP), (0x76, C.HALT), (0x41, C.LD_R_R), (0x06, C.LD_R_N),
    (0x46, C.LD_R_MEM), (0x70, C.LD_MEM_R), (0x36, C.LD_MEM_N), (0x01, C.LD_RP_NN),
    (0x0A, C.LD_A_MEM_PAIR), (0x12, C.LD_MEM_PAIR_A), (0x3A, C.LD_A_NN_MEM), (0x32, C.LD_NN_MEM_A),
    (0x2A, C.LD_HL_NN_MEM), (0x22, C.LD_NN_MEM_HL), (0xF9, C.LD_SP_HL),
    (0xC5, C.PUSH), (0xF1, C.POP), (0xE3, C.EX_SP_HL), (0x08, C.EXCHANGE), (0xEB, C.EXCHANGE), (0xD9, C.EXCHANGE),
    (0x80, C.ALU_R), (0xBE, C.ALU_MEM), (0xFE, C.ALU_N), (0x3C, C.INC_DEC_R), (0x35, C.INC_DEC_MEM),
    (0x0B, C.INC_DEC_RP), (0x09, C.ADD16), (0x07, C.ACC_OP), (0x2F, C.ACC_OP),
    (0x10, C.DJNZ), (0x18, C.JR), (0x20, C.JR_CC), (0x38, C.JR_CC),
    (0xC3, C.JP), (0xC2, C.JP_CC), (0xE9, C.JP_HL), (0xCD, C.CALL), (0xC4, C.CALL_CC),
    (0xC9, C.RET), (0xC0, C.RET_CC), (0xFF, C.RST), (0xC7, C.RST),
    (0xDB, C.IN_A_N), (0xD3, C.OUT_N_A), (0xF3, C.DI_EI), (0xFB, C.DI_EI),
    (0xCB, C.PREFIX_CB), (0xED, C.PREFIX_ED), (0xDD, C.PREFIX_IXY), (0xFD, C.PREFIX_IXY),
])
def test_main_table(opcode, expected):
    decode = decode_opcode(opcode)
    assert decode.classes == frozenset({expected})
    assert decode.op == opcode & 0x3F


@pytest.mark.parametrize("opcode, expected", [
    (0x00, C.CB_R), (0x3F, C.CB_R), (0x06, C.CB_MEM), (0x40, C.CB_BIT_R), (0x46, C.CB_BIT_MEM),
    (0x86, C.CB_MEM), (0xC6, C.CB_MEM), (0xFF, C.CB_R),
])
def test_cb_table(opcode, expected):
    assert decode_opcode(opcode, OpcodeTable.CB).classes == frozenset({expected})


@pytest.mark.parametrize("opcode, expected", [
    (0x40, C.IN_R_C), (0x41, C.OUT_C_R), (0x4A, C.ADD16), (0x42, C.ADD16),
    (0x43, C.LD_NN_MEM_HL), (0x4B, C.LD_HL_NN_MEM), (0x44, C.ACC_OP), (0x4D, C.RETI_RETN), (0x45, C.RETI_RETN),
    (0x46, C.IM_SET), (0x56, C.IM_SET), (0x47, C.LD_IR_A), (0x57, C.LD_A_IR), (0x67, C.RLD_RRD),
    (0xA0, C.BLOCK_LD), (0xB0, C.BLOCK_LD), (0xA1, C.BLOCK_CP), (0xB1, C.BLOCK_CP),
    (0xA2, C.BLOCK_IN), (0xBA, C.BLOCK_IN), (0xA3, C.BLOCK_OUT), (0xBB, C.BLOCK_OUT),
])
def test_ed_table(opcode, expected):
    assert decode_opcode(opcode, OpcodeTable.ED).classes == frozenset({expected})


# @intent:test_case_undefined ED表の未定義オペコードが空のクラス集合になることを検証します。
@pytest.mark.parametrize("opcode", [0x00, 0x3F, 0x77, 0x7F, 0xA4, 0xC3, 0xFF])
def test_ed_undefined(opcode):
    decode = decode_opcode(opcode, OpcodeTable.ED)
    assert decode.classes == frozenset()
    assert not decode.is_valid


def test_main_table_is_total():
    for opcode in range(256):
        assert decode_opcode(opcode).is_valid, f"{opcode:#04x} is not decoded"


def test_decoder_never_sets_mode_classes():
    for table in OpcodeTable:
        for opcode in range(256):
            assert not (decode_opcode(opcode, table).classes & MODE_CLASSES)


class TestDecodeVector:
    """
    DecodeVectorの単体テスト。
    """
    def test_op_range(self):
        with pytest.raises(ValueError):
            DecodeVector(op=0x40)

    # @intent:test_case_pack ビット列へのパックと復元を検証します。
    def test_bits(self):
        decode = DecodeVector.of(0xC3, C.JP)
        assert decode.op == 0x03
        assert DecodeVector.from_bits(decode.to_bits()) == decode
        assert decode.to_bits() >> len(C) == 0x03

    def test_width(self):
        assert DecodeVector.width() == len(C) + 6

    def test_class_names_sorted(self):
        decode = DecodeVector.of(0, C.NOP, C.HALT)
        assert list(decode.class_names()) == ["HALT", "NOP"]
