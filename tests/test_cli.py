"""
Tests for the PhotoTune command line interface.
"""

import json

import numpy as np
import pytest
import yaml
from click.testing import CliRunner
from PIL import Image

from conftest import make_session
from phototune.cli.main import main
from phototune.storage import SqlSessionStore, sqlite_url


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "sessions.db"


class TestConfigCommands:

    def test_show_key(self, runner):
        result = runner.invoke(main, ['config', 'show', '--key', 'tuning.feedback'])
        assert result.exit_code == 0, result.output
        assert yaml.safe_load(result.output)['strength_floor'] == 0.1

    def test_show_unknown_key(self, runner):
        result = runner.invoke(main, ['config', 'show', '--key', 'nope.nothing'])
        assert result.exit_code != 0

    def test_generate(self, runner):
        result = runner.invoke(main, ['config', 'generate', '-t', 'portrait',
                                      '--overall', '0.8', '--exposure', '0.8', '--sharpness', '0.8'])
        assert result.exit_code == 0, result.output
        config = json.loads(result.output)
        assert [op['name'] for op in config['operations']] == ['clahe', 'bilateral', 'unsharp_mask']
        assert config['strength'] == 0.4

    def test_generate_from_analysis_file(self, runner, tmp_path):
        path = tmp_path / "analysis.json"
        path.write_text(json.dumps({
            'imageType': 'food', 'mood': 'cozy',
            'technicalQuality': {'overall': 0.9, 'exposure': 0.9, 'sharpness': 0.9},
        }))
        result = runner.invoke(main, ['config', 'generate', '-a', str(path), '--preview'])
        assert result.exit_code == 0, result.output
        config = json.loads(result.output)
        assert len(config['operations']) == 2
        assert config['style'] == 'warm'


class TestOperationCommands:

    def test_list_category(self, runner):
        result = runner.invoke(main, ['operations', 'list', '--category', 'preset'])
        assert result.exit_code == 0, result.output
        names = [line.split()[0] for line in result.output.splitlines()]
        assert names == sorted(['grayscale', 'sepia', 'invert', 'high_contrast', 'warmth', 'cool'])

    def test_info_with_matrix(self, runner):
        result = runner.invoke(main, ['operations', 'info', 'invert', '--matrix'])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)['matrix'][0] == [-1.0, 0.0, 0.0, 0.0, 255.0]

    def test_info_unknown(self, runner):
        result = runner.invoke(main, ['operations', 'info', 'oil_paint'])
        assert result.exit_code != 0


class TestProfileCommands:

    def test_feedback_then_profile(self, runner, store_path):
        session_id = SqlSessionStore(sqlite_url(store_path)).save_session(make_session(strength=0.5, rating=2))

        result = runner.invoke(main, ['-s', str(store_path), 'feedback', 'record', session_id,
                                      'user-1', '--rating', '5', '--too-weak'])
        assert result.exit_code == 0, result.output

        session = SqlSessionStore(sqlite_url(store_path)).get_session(session_id)
        assert session.feedback[0].rating == 5
        assert session.feedback[0].specific_feedback.too_weak

        result = runner.invoke(main, ['-s', str(store_path), 'profile', 'show', 'user-1'])
        assert result.exit_code == 0, result.output
        assert "Average strength:     0.60" in result.output
        assert "natural_clahe_5" in result.output

    def test_feedback_for_unknown_session(self, runner, store_path):
        result = runner.invoke(main, ['-s', str(store_path), 'feedback', 'record', 'missing', 'user-1'])
        assert result.exit_code != 0
        assert "Could not record feedback" in result.output

    def test_insights_need_history(self, runner, store_path):
        result = runner.invoke(main, ['-s', str(store_path), 'profile', 'insights', 'user-1'])
        assert result.exit_code == 0, result.output
        assert "Not enough history" in result.output

    def test_store_accepts_database_url(self, runner, store_path):
        url = sqlite_url(store_path)
        SqlSessionStore(url).save_session(make_session(strength=0.7, rating=5))

        result = runner.invoke(main, ['-s', url, 'profile', 'show', 'user-1'])

        assert result.exit_code == 0, result.output
        assert "Average strength:     0.70" in result.output

    def test_history_limit_from_config(self, runner, tmp_path, store_path):
        store = SqlSessionStore(sqlite_url(store_path))
        store.save_session(make_session(strength=0.2, rating=5))
        store.save_session(make_session(strength=0.8, rating=5))
        config_path = tmp_path / "config.yaml"
        config_path.write_text("personalization:\n  history_limit: 1\n")

        limited = runner.invoke(main, ['-c', str(config_path), '-s', str(store_path),
                                       'profile', 'show', 'user-1'])
        default = runner.invoke(main, ['-s', str(store_path), 'profile', 'show', 'user-1'])

        assert limited.exit_code == 0, limited.output
        assert "Average strength:     0.80" in limited.output
        assert "Average strength:     0.50" in default.output


class TestEnhanceCommand:

    def test_enhance_writes_output_and_records_session(self, runner, tmp_path, store_path):
        source = tmp_path / "photo.png"
        Image.fromarray(np.full((8, 8, 3), 90, dtype=np.uint8)).save(source)
        out_dir = tmp_path / "out"

        result = runner.invoke(main, ['-q', '-s', str(store_path), 'enhance', str(source),
                                      '-t', 'landscape', '-u', 'user-1', '-o', str(out_dir)])

        assert result.exit_code == 0, result.output
        target = out_dir / "photo_enhanced.png"
        assert target.exists()
        with Image.open(target) as img:
            assert img.size == (8, 8)
        sessions = SqlSessionStore(sqlite_url(store_path)).load_recent_sessions("user-1")
        assert len(sessions) == 1
        assert sessions[0].image_type == "landscape"
        assert sessions[0].quality_improvement is not None

    def test_enhance_requires_images(self, runner):
        result = runner.invoke(main, ['enhance'])
        assert result.exit_code != 0
