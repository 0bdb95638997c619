# tests/test_cli.py
"""
Tests for the command-line entry point.
"""

import json
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import main

pytestmark = [pytest.mark.integration]


@pytest.fixture(autouse=True)
def reset_cli_logger():
    """main() attaches a stderr handler; drop it so later tests start clean"""
    yield
    logging.getLogger('beatguard').handlers.clear()


@pytest.fixture
def no_config(tmp_path):
    return str(tmp_path / 'absent.yaml')


class TestCLI:
    """Tests for main()"""

    def test_decode(self, capsys, no_config):
        exit_code = main.main(['--mode', 'decode', '--input', '!home~12*buy', '--config', no_config])

        result = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert result['tokens'] == [
            {'label': 'home', 'type': 'Page'},
            {'ticks': 12, 'type': 'TimeGap'},
            {'label': 'buy', 'type': 'Element'},
        ]
        assert result['encoded'] == '!home~12*buy'

    def test_classify(self, capsys, no_config):
        exit_code = main.main(['--mode', 'classify', '--input', "!home~500" + "/500" * 7 + "*btn",
                               '--config', no_config])

        result = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert result['label'] == 'Metronome:500'
        assert result['human_flag'] is None

    def test_output_file(self, tmp_path, no_config):
        output = tmp_path / 'result.json'

        exit_code = main.main(['--mode', 'classify', '--input', '!p1~13/8/8*buy',
                               '--config', no_config, '--output', str(output)])

        assert exit_code == 0
        assert json.loads(output.read_text(encoding='utf-8'))['human_flag'] == 1

    def test_bad_input(self, no_config):
        assert main.main(['--mode', 'decode', '--input', 'home~1', '--config', no_config]) == 2

    def test_bad_config(self, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_text("grammar: [unclosed\n", encoding='utf-8')

        assert main.main(['--mode', 'decode', '--input', '!home', '--config', str(path)]) == 1
