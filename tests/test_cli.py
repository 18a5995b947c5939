from unittest import mock

import pytest

from tests.conftest import CPU_CSV, CPU_LINES, METRIC_CSV
from tsdb_tools.cli import main


@pytest.fixture(autouse=True)
def _logging(restore_root_logger):
    yield


def test_to_csv(tmp_path):
    source = tmp_path / "cpu.lp"
    source.write_text(CPU_LINES, encoding="utf-8")
    output = tmp_path / "cpu.csv"

    assert main(["influx", "to-csv", "-i", str(source), "-o", str(output)]) == 0
    assert output.read_text(encoding="utf-8") == CPU_CSV


def test_to_csv_fails_on_malformed_input(tmp_path):
    source = tmp_path / "bad.lp"
    source.write_text("cpu,host=a 1451606400000000000\n", encoding="utf-8")

    code = main(["influx", "to-csv", "-i", str(source), "-o", str(tmp_path / "o.csv")])
    assert code == 1


def test_missing_input_file(tmp_path):
    code = main(
        ["influx", "to-csv", "-i", str(tmp_path / "nope.lp"), "-o", str(tmp_path / "o")]
    )
    assert code == 1


def test_to_line_directory(tmp_path):
    data = tmp_path / "data"
    data.mkdir()
    (data / "metric2.csv").write_text(METRIC_CSV, encoding="utf-8")
    (data / "metric1.csv").write_text(METRIC_CSV, encoding="utf-8")
    output = tmp_path / "out.lp"

    code = main(
        ["influx", "to-line", "-i", str(data), "-o", str(output), "--tag", "hostname"]
    )

    assert code == 0
    lines = output.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 4
    assert lines[0] == (
        "metric1,hostname=host_0 usage_user=58,usage_system=2 1451606400000000000"
    )
    assert lines[2].startswith("metric2,hostname=host_0 ")


def test_to_line_uses_config_file(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "csv:\n  timestamp_column: time\n  tag_columns: [host]\n", encoding="utf-8"
    )
    source = tmp_path / "mem.csv"
    source.write_text("host,time,used\nh1,2,10\n", encoding="utf-8")
    output = tmp_path / "mem.lp"

    code = main(
        ["-c", str(config), "influx", "to-line", "-i", str(source), "-o", str(output)]
    )

    assert code == 0
    assert output.read_text(encoding="utf-8") == "mem,host=h1 used=10 2000000\n"


def test_to_line_to_stdout(tmp_path, capsys):
    source = tmp_path / "mem.csv"
    source.write_text("used,timestamp\n10,1\n", encoding="utf-8")

    assert main(["influx", "to-line", "-i", str(source), "-o", "-"]) == 0
    assert capsys.readouterr().out == "mem used=10 1000000\n"


def test_to_line_schema_error(tmp_path):
    source = tmp_path / "mem.csv"
    source.write_text("used,timestamp\n10\n", encoding="utf-8")
    code = main(["influx", "to-line", "-i", str(source), "-o", str(tmp_path / "o")])
    assert code == 1


def test_invalid_config_file(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("csv:\n  tag_columns: host\n", encoding="utf-8")
    source = tmp_path / "mem.csv"
    source.write_text("used\n1\n", encoding="utf-8")
    code = main(
        ["-c", str(config), "influx", "to-line", "-i", str(source), "-o", str(tmp_path / "o")]
    )
    assert code == 1


def test_write_sends_lines_to_influxdb(tmp_path):
    source = tmp_path / "metric1.csv"
    source.write_text(METRIC_CSV, encoding="utf-8")

    with mock.patch("tsdb_tools.cli.InfluxClient") as client_cls:
        code = main(
            [
                "influx",
                "write",
                "-i",
                str(source),
                "--url",
                "http://influx.local:8086",
                "--database",
                "telegraf",
                "--batch-size",
                "100",
                "--tag",
                "hostname",
            ]
        )

    assert code == 0
    client = client_cls.return_value
    assert client_cls.call_args.kwargs["url"] == "http://influx.local:8086"
    client.create_database.assert_called_once_with("telegraf")
    lines, database = client.write_lines.call_args.args
    assert database == "telegraf"
    assert client.write_lines.call_args.kwargs == {"batch_size": 100}
    assert list(lines)[0] == (
        "metric1,hostname=host_0 usage_user=58,usage_system=2 1451606400000000000\n"
    )


def test_write_requires_a_database(tmp_path):
    source = tmp_path / "metric1.csv"
    source.write_text(METRIC_CSV, encoding="utf-8")
    with mock.patch("tsdb_tools.cli.InfluxClient") as client_cls:
        assert main(["influx", "write", "-i", str(source)]) == 1
    client_cls.assert_not_called()


def test_subcommand_is_required():
    with pytest.raises(SystemExit):
        main(["influx"])


def test_to_line_rejects_output_inside_input_directory(tmp_path):
    data = tmp_path / "data"
    data.mkdir()
    (data / "metric1.csv").write_text(METRIC_CSV, encoding="utf-8")
    output = data / "out.lp"

    code = main(["influx", "to-line", "-i", str(data), "-o", str(output)])

    assert code == 1
    assert not output.exists()
    assert [p.name for p in data.iterdir()] == ["metric1.csv"]
