import os
import stat
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import main  # noqa: F401  (puts src/ on sys.path when not installed)
from flutter_web_server.build import BuildResult, run_build


def write_script(path: str, body: str):
    with open(path, "w", encoding="utf-8") as f:
        f.write("#!/bin/sh\n" + body)
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@unittest.skipIf(sys.platform.startswith("win"), "build scripts are POSIX shell scripts")
class RunBuildTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = self._tmp.name
        self.script = os.path.join(self.root, "flutter_build.sh")

    def tearDown(self):
        self._tmp.cleanup()

    def test_zero_exit_is_success(self):
        write_script(self.script, "echo 'Compiling lib/main.dart'\necho done\n")
        result = run_build(self.script, cwd=self.root)
        self.assertTrue(result.success)
        self.assertEqual(result.message, "Build completed successfully")
        self.assertEqual(result.stdout, "Compiling lib/main.dart\ndone\n")
        self.assertEqual(result.to_json(), {
            "success": True,
            "message": "Build completed successfully",
            "output": "Compiling lib/main.dart\ndone\n",
        })

    def test_stderr_on_zero_exit_is_still_success(self):
        write_script(self.script, "echo built\necho 'warning: deprecated flag' >&2\n")
        result = run_build(self.script, cwd=self.root)
        self.assertTrue(result.success)
        self.assertEqual(result.stderr, "warning: deprecated flag\n")

    def test_nonzero_exit_is_failure(self):
        write_script(self.script, "echo 'flutter: command not found' >&2\nexit 3\n")
        result = run_build(self.script, cwd=self.root)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Build failed")
        self.assertIn("exit status 3", result.error)
        payload = result.to_json()
        self.assertEqual(payload["details"], "flutter: command not found\n")
        self.assertNotIn("output", payload)

    def test_script_without_shebang_runs_through_shell(self):
        with open(self.script, "w", encoding="utf-8") as f:
            f.write('echo built\necho "args=$#"\n')
        os.chmod(self.script, 0o755)
        result = run_build(self.script, cwd=self.root)
        self.assertTrue(result.success, result.error)
        self.assertEqual(result.stdout, "built\nargs=0\n")

    def test_missing_script_is_failure(self):
        result = run_build(self.script, cwd=self.root)
        self.assertFalse(result.success)
        self.assertTrue(result.error)
        self.assertEqual(result.to_json()["details"], "")

    def test_script_runs_in_project_root(self):
        write_script(self.script, "mkdir -p web\necho '<html>ok</html>' > web/index.html\n")
        self.assertTrue(run_build(self.script, cwd=self.root).success)
        self.assertTrue(os.path.isfile(os.path.join(self.root, "web", "index.html")))


class BuildResultTest(unittest.TestCase):
    def test_failure_payload_shape(self):
        result = BuildResult(False, "Build failed", stderr="boom", error="Command failed")
        self.assertEqual(result.to_json(), {
            "success": False,
            "message": "Build failed",
            "error": "Command failed",
            "details": "boom",
        })


if __name__ == "__main__":
    unittest.main()
