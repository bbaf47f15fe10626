from sean816.emulator import main
from sean816.rom import HEADER_MAGIC, RomHeader


def build_rom(code):
    header = RomHeader(HEADER_MAGIC, RomHeader.SIZE, RomHeader.SIZE, 0)
    return header.pack() + bytes(code)


def test_no_arguments_prints_usage(capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().out


def test_device_without_path(capsys):
    assert main(["-device"]) == 1
    assert "requires a path" in capsys.readouterr().err


def test_unknown_device(capsys, tmp_path):
    assert main(["-device", "nothing", str(tmp_path / "x.bin")]) == 1
    assert "device not found" in capsys.readouterr().err


def test_missing_binary(capsys, tmp_path):
    assert main([str(tmp_path / "absent.bin")]) == 1
    assert "Error" in capsys.readouterr().err


def test_serial_output(capsysbinary, tmp_path):
    path = tmp_path / "hello.bin"
    # store 0x41 0x00C0 ; halt
    path.write_bytes(build_rom([0x02, 0x41, 0xC0, 0x00, 0x00]))
    assert main(["-device", "serial", str(path)]) == 0
    assert capsysbinary.readouterr().out == b"A"


def test_template_value_echoed_to_serial(capsysbinary, tmp_path):
    path = tmp_path / "echo.bin"
    # load a 0x0001 ; store a 0x00C0 ; halt
    code = [0x21, 0x00, 0x01, 0x00, 0x22, 0x00, 0xC0, 0x00, 0x00]
    path.write_bytes(build_rom(code))
    status = main(["-device", "template", "-device", "serial", str(path)])
    assert status == 0
    assert capsysbinary.readouterr().out == bytes([27])