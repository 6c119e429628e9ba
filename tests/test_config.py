"""
Tests for TunerConfig and the tunable table
"""
import pytest

from host_tuner.core.config import TunerConfig, parse_profile
from host_tuner.core.errors import ConfigError
from host_tuner.core.models import Profile, Source
from host_tuner.core.tunables import sysctl_targets, tunable, tunables_for


class TestTunerConfig:

    def test_defaults(self):
        config = TunerConfig.from_env({})
        assert config.profile is Profile.STANDARD
        assert config.sysctl_conf == "/etc/sysctl.conf"
        assert config.unit_path == "/etc/systemd/system/host-tuner.service"
        assert (config.ping_host, config.ping_count, config.ping_timeout_s) == ("clob.polymarket.com", 5, 2)

    def test_env_overrides(self):
        config = TunerConfig.from_env({
            "HOST_TUNER_PROFILE": "HFT",
            "HOST_TUNER_PING_HOST": "example.com",
            "HOST_TUNER_PING_COUNT": "3",
        })
        assert config.profile is Profile.HFT
        assert config.ping_host == "example.com"
        assert config.ping_count == 3

    def test_cli_profile_wins(self):
        config = TunerConfig.from_env({"HOST_TUNER_PROFILE": "hft"}).with_profile("standard")
        assert config.profile is Profile.STANDARD

    def test_no_cli_profile_keeps_env(self):
        assert TunerConfig.from_env({"HOST_TUNER_PROFILE": "hft"}).with_profile(None).profile is Profile.HFT

    @pytest.mark.parametrize("env", [
        {"HOST_TUNER_PROFILE": "turbo"},
        {"HOST_TUNER_PING_COUNT": "five"},
        {"HOST_TUNER_PING_TIMEOUT": "0"},
    ])
    def test_invalid(self, env):
        with pytest.raises(ConfigError):
            TunerConfig.from_env(env)

    def test_parse_profile_passthrough(self):
        assert parse_profile(Profile.HFT) is Profile.HFT


class TestTunableTable:

    def test_names_unique(self):
        names = [t.name for t in tunables_for(Profile.HFT)]
        assert len(names) == len(set(names))

    def test_hft_extends_standard(self):
        standard = {t.name for t in tunables_for(Profile.STANDARD)}
        hft = {t.name for t in tunables_for(Profile.HFT)}
        assert standard < hft
        assert hft - standard == {"busy_poll", "busy_read", "cstates"}

    def test_only_congestion_control_is_critical_in_standard(self):
        critical = [t.name for t in tunables_for(Profile.STANDARD) if t.severity == "fail"]
        assert critical == ["congestion_control"]

    def test_every_sysctl_has_a_target(self):
        for t in tunables_for(Profile.HFT):
            if t.source is Source.SYSCTL:
                assert t.target == t.expected

    def test_sysctl_targets(self):
        targets = sysctl_targets(Profile.STANDARD)
        assert targets["net.ipv4.tcp_congestion_control"] == "bbr"
        assert targets["net.core.default_qdisc"] == "fq"
        assert "net.core.busy_poll" not in targets
        assert sysctl_targets(Profile.HFT)["net.core.busy_poll"] == "50"

    def test_lookup_by_name(self):
        assert tunable("cstates").source is Source.CPU_CSTATES
        with pytest.raises(KeyError):
            tunable("turbo_boost")
