# tests/test_main.py
import pytest

from main import main


def test_cli_build_save_and_reload(tmp_path, capsys):
    path = tmp_path / "r18.pt"
    net = main(["--depth", "18", "--input-shape", "3", "32", "32",
                "--num-classes", "10", "--summary", "--save", str(path)])
    assert net.output_shape == (10,)
    assert path.exists()
    assert "sequential[resnet18]:" in capsys.readouterr().out

    again = main(["--depth", "18", "--input-shape", "3", "32", "32",
                  "--num-classes", "10", "--weights", str(path), "--flops"])
    assert again.config.pretrained


def test_cli_headless():
    net = main(["--depth", "50", "--input-shape", "3", "64", "48", "--no-top"])
    assert net.output_shape == (2048, 2, 2)


def test_cli_rejects_unknown_depth():
    with pytest.raises(SystemExit):
        main(["--depth", "200"])
