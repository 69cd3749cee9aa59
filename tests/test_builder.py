"""
Tests for the contract builder
"""

import pytest

from vantis_offchain.contracts import DEPLOYMENT_GRAPH, ORACLE_ADAPTER, get_descriptor
from vantis_offchain.exceptions import BuildError


class TestBuild:
    def test_release_build_optimizes_every_wasm(self, builder, stellar, settings, wasm_artifacts):
        built = builder.build()

        build_args, _ = stellar.calls[0]
        assert build_args == ["contract", "build"]
        optimized = [args[-1] for args, _ in stellar.calls if args[:2] == ["contract", "optimize"]]
        assert sorted(optimized) == sorted(str(path) for path in wasm_artifacts)
        assert built == sorted(wasm_artifacts)

    def test_optimized_outputs_are_not_optimized_again(self, builder, stellar, wasm_artifacts):
        for path in wasm_artifacts:
            path.with_name(path.stem + ".optimized.wasm").write_bytes(b"\x00asm")

        built = builder.build()

        optimized = [args[-1] for args, _ in stellar.calls if args[:2] == ["contract", "optimize"]]
        assert sorted(optimized) == sorted(str(path) for path in wasm_artifacts)
        assert built == sorted(wasm_artifacts)

    def test_debug_build_uses_dev_profile(self, builder, stellar):
        assert builder.build(mode="debug") == []
        args, _ = stellar.calls[0]
        assert args == ["contract", "build", "--profile", "dev"]
        assert not any(call[:2] == ["contract", "optimize"] for call, _ in stellar.calls)

    def test_single_contract_by_logical_name(self, builder, stellar):
        builder.build(contract="vantis_pool")
        args, _ = stellar.calls[0]
        assert args[-2:] == ["--package", "vantis-pool"]

    def test_clean_runs_cargo_first(self, builder, tools_installed, monkeypatch):
        commands = []

        def fake_run_command(command, env=None, cwd=None):
            from vantis_offchain.stellar_cli import CommandResult

            commands.append((command, cwd))
            return CommandResult(command, 0, "")

        monkeypatch.setattr("vantis_offchain.builder.run_command", fake_run_command)
        builder.build(clean=True)
        assert commands == [(["cargo", "clean"], builder.settings.contracts_path)]

    def test_failed_build_raises(self, builder, stellar):
        stellar.script("build", "error: could not compile `vantis-pool`", exit_status=101)
        with pytest.raises(BuildError, match="could not compile"):
            builder.build()

    def test_unknown_mode(self, builder):
        with pytest.raises(BuildError):
            builder.build(mode="profiling")


class TestVerifyArtifacts:
    def test_all_present(self, builder, wasm_artifacts):
        assert builder.verify_artifacts() == wasm_artifacts

    def test_missing_artifact_names_the_file(self, builder, wasm_artifacts):
        wasm_artifacts[2].unlink()
        with pytest.raises(BuildError, match="vantis_pool.wasm"):
            builder.verify_artifacts()

    def test_build_all_without_output_fails(self, builder):
        with pytest.raises(BuildError, match="oracle_adapter.wasm"):
            builder.build_all()

    def test_deploy_artifact_prefers_optimized(self, builder, wasm_artifacts):
        plain = wasm_artifacts[0]
        assert builder.deploy_artifact(ORACLE_ADAPTER) == plain

        optimized = plain.with_name("oracle_adapter.optimized.wasm")
        optimized.write_bytes(b"\x00asm")
        assert builder.deploy_artifact(ORACLE_ADAPTER) == optimized


class TestRegistry:
    def test_graph_order(self):
        assert [d.logical_name for d in DEPLOYMENT_GRAPH] == [
            "oracle_adapter",
            "blend_adapter",
            "vantis_pool",
            "risk_engine",
            "borrow_limit_policy",
        ]
        assert [d.order for d in DEPLOYMENT_GRAPH] == list(range(5))

    def test_lookup_by_crate_name(self):
        assert get_descriptor("risk-engine").logical_name == "risk_engine"
        assert get_descriptor("unknown") is None

    def test_artifact_path(self, settings):
        target = settings.target_dir("release")
        assert ORACLE_ADAPTER.artifact_path(target) == target / "oracle_adapter.wasm"
        assert str(target).endswith("target/wasm32v1-none/release")
