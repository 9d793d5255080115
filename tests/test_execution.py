"""
Tests for input staging commands, container mounts, the wrapper builder and
task submission.
"""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ospool.condor import QueueState, condor_q
from ospool.container import ContainerMountPlanner, SingularityBuilder
from ospool.execution import (
    FileCopyStrategy,
    TaskHandler,
    TaskRun,
    WrapperBuilder,
    WrapperCapabilities,
)
from ospool.paths import StagingMap, StagingRecord

STAGED = StagingMap(
    [StagingRecord("/home/me/pipeline", "/staging/me/work/.staged-pipeline")]
)
MAPPINGS = {"/mnt/htc-cephfs/fuse/root/staging": "/staging"}


def normalizer(path):
    from ospool.paths import normalize_path

    return normalize_path(path, STAGED, MAPPINGS)


class TestFileCopyStrategy:
    """Test generation of stage-in and unstage commands."""

    def test_symlink_default(self):
        """Inputs are symlinked from their normalized source."""
        strategy = FileCopyStrategy("/staging/me/work/ab/cd", normalizer)

        cmd = strategy.stage_input_file("/home/me/pipeline/data/ref.fa", "ref.fa")

        assert cmd == "ln -s /staging/me/work/.staged-pipeline/data/ref.fa ref.fa"

    def test_user_mapping_applied(self):
        """Canonical storage paths are rewritten to the alias."""
        strategy = FileCopyStrategy("/staging/me/work/ab/cd", normalizer)

        cmd = strategy.stage_input_file("/mnt/htc-cephfs/fuse/root/staging/me/in.bam", "in.bam")

        assert cmd == "ln -s /staging/me/in.bam in.bam"

    def test_nested_target_creates_parent(self):
        """A nested target name gets its parent directory created first."""
        strategy = FileCopyStrategy("/w", normalizer)

        cmd = strategy.stage_input_file("/staging/me/reads/r1.fq", "reads/sample1/r1.fq")

        assert cmd == "mkdir -p reads/sample1 && ln -s /staging/me/reads/r1.fq reads/sample1/r1.fq"

    def test_copy_mode(self):
        """copy mode dereferences links and copies recursively."""
        strategy = FileCopyStrategy("/w", None, "copy")

        assert strategy.stage_input_file("/staging/x", "x") == "cp -fRL /staging/x x"

    def test_link_mode(self):
        """link mode creates hard links."""
        strategy = FileCopyStrategy("/w", None, "link")

        assert strategy.stage_input_file("/staging/x", "x") == "ln /staging/x x"

    def test_rellink_mode(self):
        """rellink mode links relative to the target's directory."""
        strategy = FileCopyStrategy("/staging/work/ab/cd", None, "rellink")

        cmd = strategy.stage_input_file("/staging/work/ef/gh/out.txt", "out.txt")

        assert cmd == "ln -s ../../ef/gh/out.txt out.txt"

    def test_paths_are_quoted(self):
        """Paths with spaces are shell quoted."""
        strategy = FileCopyStrategy("/w")

        cmd = strategy.stage_input_file("/staging/my data/a b.txt", "a b.txt")

        assert cmd == "ln -s '/staging/my data/a b.txt' 'a b.txt'"

    def test_unknown_mode(self):
        """Unsupported stage-in modes are rejected."""
        with pytest.raises(ValueError, match="Unknown stage-in mode"):
            FileCopyStrategy("/w", None, "rsync")

    def test_unstage_keeps_wildcards(self):
        """Output patterns keep their globs and missing outputs are tolerated."""
        strategy = FileCopyStrategy("/w")

        script = strategy.unstage_files_script(["*.bam", ".exitcode"], "/staging/w/ab/cd")

        assert script.splitlines() == [
            "cp -fRL *.bam /staging/w/ab/cd 2>/dev/null || true",
            "cp -fRL .exitcode /staging/w/ab/cd 2>/dev/null || true",
        ]


class TestContainerMounts:
    """Test container bind mount planning."""

    def test_staged_bind_options(self):
        """Each staged directory is mounted back at its original path."""
        planner = ContainerMountPlanner(STAGED, MAPPINGS)

        assert planner.staged_bind_options() == [
            "-B /staging/me/work/.staged-pipeline:/home/me/pipeline"
        ]

    def test_staged_bind_options_quoted(self):
        """Paths with spaces are quoted as one bind argument."""
        staged = StagingMap([StagingRecord("/home/me/my pipeline", "/staging/w/.staged-my pipeline")])
        planner = ContainerMountPlanner(staged)

        assert planner.staged_bind_options() == [
            "-B '/staging/w/.staged-my pipeline:/home/me/my pipeline'"
        ]

    def test_no_bind_options_on_shared_filesystem(self):
        """A shared filesystem needs no extra mounts."""
        planner = ContainerMountPlanner(STAGED, MAPPINGS, shared_filesystem=True)

        assert planner.staged_bind_options() == []

    def test_inputs_normalized(self):
        """Input sources are rewritten before their parents are mounted."""
        planner = ContainerMountPlanner(STAGED, MAPPINGS)
        inputs = {
            "main.nf": Path("/home/me/pipeline/main.nf"),
            "in.bam": Path("/mnt/htc-cephfs/fuse/root/staging/me/in.bam"),
        }

        assert planner.normalize_inputs(inputs) == {
            "main.nf": Path("/staging/me/work/.staged-pipeline/main.nf"),
            "in.bam": Path("/staging/me/in.bam"),
        }

    def test_inputs_untouched_on_shared_filesystem(self):
        """Shared filesystem inputs are used as-is."""
        planner = ContainerMountPlanner(STAGED, MAPPINGS, shared_filesystem=True)
        inputs = {"main.nf": Path("/home/me/pipeline/main.nf")}

        assert planner.normalize_inputs(inputs) == inputs

    def test_configure_builder(self):
        """The builder gets normalized input mounts and staged run options."""
        planner = ContainerMountPlanner(STAGED, MAPPINGS)
        builder = SingularityBuilder("docker://ubuntu:22.04")

        planner.configure(builder, {"main.nf": Path("/home/me/pipeline/main.nf")})
        command = builder.set_work_dir("/staging/me/work/ab/cd").add_mount_work_dir().build().run_command

        assert "-B /staging/me/work/.staged-pipeline " in command
        assert "-B /staging/me/work/.staged-pipeline:/home/me/pipeline" in command
        assert "--pwd /staging/me/work/ab/cd" in command
        assert command.startswith("singularity exec --no-home --pid")
        assert command.endswith("docker://ubuntu:22.04")


@pytest.fixture
def task(tmp_path):
    return TaskRun(
        name="ALIGN (1)",
        work_dir=tmp_path / "work" / "ab" / "abcdef",
        script="echo hello > out.txt\n",
        input_files={"ref.fa": tmp_path / "data" / "ref.fa"},
        output_files=("out.txt",),
    )


def make_builder(task, tmp_path, **kwargs):
    capabilities = kwargs.pop("capabilities", WrapperCapabilities(unstage_outputs=True))
    return WrapperBuilder(
        task,
        FileCopyStrategy(task.work_dir),
        capabilities,
        submit_file=kwargs.pop("submit_file", tmp_path / "submit" / "ab" / "abcdef" / ".command.condor"),
        manifest="universe = vanilla\nqueue\n",
        **kwargs,
    )


class TestWrapperBuilder:
    """Test the generated wrapper script and files."""

    def test_build_writes_files(self, task, tmp_path):
        """The task script, executable wrapper and submit file are written."""
        builder = make_builder(task, tmp_path)

        wrapper = builder.build()

        assert wrapper == task.work_dir / ".command.run"
        assert os.access(wrapper, os.X_OK)
        assert (task.work_dir / ".command.sh").read_text() == "echo hello > out.txt\n"
        assert builder.submit_file.read_text() == "universe = vanilla\nqueue\n"

    def test_sandboxed_script(self, task, tmp_path):
        """Sandboxed runs stage inputs in and copy outputs and control files back."""
        script = make_builder(task, tmp_path).render_script()

        assert script.startswith("#!/bin/bash\n")
        assert 'cd "${_CONDOR_SCRATCH_DIR:-$PWD}"' in script
        assert f"ln -s {tmp_path}/data/ref.fa ref.fa" in script
        for name in ("out.txt", ".command.out", ".command.err", ".command.trace", ".exitcode"):
            assert f"cp -fRL {name} {task.work_dir} 2>/dev/null || true" in script
        assert script.rstrip().endswith('exit "$(cat .exitcode)"')

    def test_shared_script(self, task, tmp_path):
        """Without unstaging the task runs in its work directory."""
        capabilities = WrapperCapabilities(unstage_outputs=False)
        script = make_builder(task, tmp_path, capabilities=capabilities).render_script()

        assert f"cd {task.work_dir}" in script
        assert "2>/dev/null || true" not in script

    def test_secrets_rewritten(self, task, tmp_path):
        """The secrets snippet goes through the injected rewrite."""
        capabilities = WrapperCapabilities(
            unstage_outputs=True,
            rewrite_secrets=lambda s: s.replace("/home/me/.nextflow/secrets", "/w/.staged-secrets"),
        )
        builder = make_builder(
            task,
            tmp_path,
            capabilities=capabilities,
            secrets_env="export TOKEN=$(cat /home/me/.nextflow/secrets/.nf-x.secrets)",
        )

        assert builder.get_secrets_env() == "export TOKEN=$(cat /w/.staged-secrets/.nf-x.secrets)"
        assert "/w/.staged-secrets/.nf-x.secrets" in builder.render_script()

    def test_bin_dir_on_path(self, task, tmp_path):
        """The bin directory is put first on PATH."""
        script = make_builder(task, tmp_path, bin_dir=Path("/w/.nextflow-bin")).render_script()

        assert 'export PATH=/w/.nextflow-bin:"$PATH"' in script

    def test_container_launch(self, tmp_path):
        """Containerized tasks launch through singularity with staged binds."""
        task = TaskRun(
            name="QC",
            work_dir=tmp_path / "work" / "cd" / "ef",
            container="docker://biocontainers/fastqc:0.11.9",
            input_files={"main.nf": "/home/me/pipeline/main.nf"},
        )
        capabilities = WrapperCapabilities(
            mount_planner=ContainerMountPlanner(STAGED, MAPPINGS),
            unstage_outputs=True,
        )

        script = make_builder(task, tmp_path, capabilities=capabilities).render_script()

        assert "singularity exec --no-home --pid" in script
        assert "-B /staging/me/work/.staged-pipeline:/home/me/pipeline" in script
        assert "docker://biocontainers/fastqc:0.11.9 /bin/bash" in script

    def test_submit_file_in_work_dir(self, task, tmp_path):
        """A submit file inside the work directory needs no extra directories."""
        builder = make_builder(task, tmp_path, submit_file=task.work_dir / ".command.condor")

        builder.build()

        assert (task.work_dir / ".command.condor").exists()
        assert not (tmp_path / "submit").exists()


class TestTaskHandler:
    """Test submission and state tracking of one task."""

    @pytest.fixture
    def executor(self, task, tmp_path):
        executor = MagicMock()
        executor.create_wrapper_builder.return_value = make_builder(task, tmp_path)
        return executor

    @patch("ospool.execution.handler.condor_submit", return_value="77.0")
    def test_submit(self, mock_submit, task, executor, tmp_path):
        """Submitting writes the files and records the job id."""
        handler = TaskHandler(task, executor, secrets_env="export A=1")

        assert handler.submit() == "77.0"

        executor.create_wrapper_builder.assert_called_once_with(task, secrets_env="export A=1")
        mock_submit.assert_called_once_with(tmp_path / "submit" / "ab" / "abcdef" / ".command.condor")
        assert handler.state is QueueState.PENDING
        assert handler.wrapper_file.exists()

    @patch("ospool.execution.handler.condor_submit", return_value="77.0")
    def test_update_state(self, mock_submit, task, executor):
        """States come from the snapshot; jobs gone from the queue are done."""
        handler = TaskHandler(task, executor)
        handler.submit()

        assert handler.update_state({"77.0": QueueState.RUNNING}) is QueueState.RUNNING
        assert handler.update_state({"78.0": QueueState.RUNNING}) is QueueState.DONE

    def test_update_before_submit(self, task, executor):
        """An unsubmitted task keeps its state."""
        handler = TaskHandler(task, executor)

        assert handler.update_state({}) is QueueState.UNKNOWN
        assert handler.kill() is False

    @patch("ospool.condor.scheduler.subprocess.run")
    @patch("ospool.execution.handler.condor_submit", return_value="1234.0")
    def test_failed_poll_keeps_state(self, mock_submit, mock_run, task, executor):
        """A failed condor_q poll leaves running jobs untouched."""
        handler = TaskHandler(task, executor)
        handler.submit()
        handler.update_state({"1234.0": QueueState.RUNNING})

        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="Failed to connect")

        assert handler.update_state(condor_q()) is QueueState.RUNNING
        assert handler.update_state(None) is QueueState.RUNNING

    @patch("ospool.condor.scheduler.subprocess.run")
    @patch("ospool.execution.handler.condor_submit", return_value="1234.0")
    def test_empty_queue_means_done(self, mock_submit, mock_run, task, executor):
        """A successful poll without the job means it has left the queue."""
        handler = TaskHandler(task, executor)
        handler.submit()
        handler.update_state({"1234.0": QueueState.RUNNING})

        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")

        assert handler.update_state(condor_q()) is QueueState.DONE

    @patch("ospool.execution.handler.condor_rm", return_value=True)
    @patch("ospool.execution.handler.condor_submit", return_value="77.0")
    def test_kill(self, mock_submit, mock_rm, task, executor):
        """kill removes the submitted job."""
        handler = TaskHandler(task, executor)
        handler.submit()

        assert handler.kill() is True
        mock_rm.assert_called_once_with("77.0")
