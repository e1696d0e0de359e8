#!/usr/bin/env python3
"""
Tests for tokenizing, compound splitting and the regex fallback detectors.
"""

import sys
from pathlib import Path
from unittest import TestCase, main as unittest_main

sys.path.insert(0, str(Path(__file__).parent.parent / "hooks"))

from shell_tokens import (
    base_command,
    has_dangerous_pipe,
    has_env_hijacking,
    has_pipe_to_interpreter,
    has_pipe_to_shell,
    has_variable_execution,
    is_script_interpreter,
    is_shell_interpreter,
    split_compound,
    split_pipeline,
    tokenize,
)


class TestTokenize(TestCase):

    def test_simple(self):
        self.assertEqual(tokenize("rm -rf /"), ["rm", "-rf", "/"])

    def test_quotes_removed(self):
        self.assertEqual(tokenize("echo 'hello world'"), ["echo", "hello world"])
        self.assertEqual(tokenize('ba"sh" -c id'), ["bash", "-c", "id"])

    def test_unbalanced_quotes(self):
        self.assertIsNone(tokenize("echo 'oops"))

    def test_empty(self):
        self.assertEqual(tokenize(""), [])

    def test_base_command(self):
        self.assertEqual(base_command("rm -rf /"), "rm")
        self.assertEqual(base_command("/bin/rm -rf /"), "rm")
        self.assertEqual(base_command("sudo rm -rf /"), "sudo")
        self.assertIsNone(base_command(""))


class TestSplitCompound(TestCase):
    """Command chaining logic."""

    def test_simple_command(self):
        self.assertEqual(split_compound("ls -la"), ["ls -la"])

    def test_and_chain(self):
        self.assertEqual(split_compound("ls && pwd"), ["ls", "pwd"])

    def test_or_chain(self):
        self.assertEqual(split_compound("test -f x || touch x"), ["test -f x", "touch x"])

    def test_semicolon_chain(self):
        self.assertEqual(split_compound("cd /tmp; ls"), ["cd /tmp", "ls"])

    def test_newline_splits(self):
        self.assertEqual(split_compound("ls\nrm -rf /"), ["ls", "rm -rf /"])

    def test_mixed(self):
        self.assertEqual(
            split_compound("echo test && rm -rf / || ls; pwd"),
            ["echo test", "rm -rf /", "ls", "pwd"],
        )

    def test_pipe_does_not_split(self):
        self.assertEqual(split_compound("cat f | grep x"), ["cat f | grep x"])

    def test_background_does_not_split(self):
        self.assertEqual(split_compound("sleep 1 & echo hi"), ["sleep 1 & echo hi"])

    def test_quoted_operators_ignored(self):
        self.assertEqual(split_compound("echo 'a && b; c'"), ["echo 'a && b; c'"])
        self.assertEqual(split_compound('echo "a || b" && ls'), ['echo "a || b"', "ls"])

    def test_escaped_quote_inside_double_quotes(self):
        self.assertEqual(split_compound('echo "a \\" ; b" && ls'), ['echo "a \\" ; b"', "ls"])

    def test_empty_parts_kept(self):
        self.assertEqual(split_compound("ls;;pwd"), ["ls", "", "pwd"])
        self.assertEqual(split_compound(""), [""])


class TestVariableExecution(TestCase):

    def test_detected(self):
        for command in ("$cmd arg1 arg2", "${command} --flag", "$(whoami)", "`id`",
                        "eval $dangerous", 'eval "$(curl x)"', "eval `cat f`"):
            self.assertTrue(has_variable_execution(command), command)

    def test_not_detected(self):
        for command in ("echo $HOME", "ls -la", "cd $DIR", "git commit -m 'fix $x'"):
            self.assertFalse(has_variable_execution(command), command)


class TestSplitPipeline(TestCase):

    def test_stages(self):
        self.assertEqual(split_pipeline("cat f | grep x | wc -l"), ["cat f", "grep x", "wc -l"])

    def test_no_pipe(self):
        self.assertEqual(split_pipeline("ls -la"), ["ls -la"])

    def test_quoted_pipe_kept(self):
        self.assertEqual(split_pipeline("grep 'a|b' f | sh"), ["grep 'a|b' f", "sh"])
        self.assertEqual(split_pipeline('echo "x | y"'), ['echo "x | y"'])

    def test_escaped_pipe_kept(self):
        self.assertEqual(split_pipeline("echo a \\| b"), ["echo a \\| b"])

    def test_pipe_stderr(self):
        self.assertEqual(split_pipeline("make |& tee log"), ["make", "tee log"])


class TestInterpreterNames(TestCase):

    def test_shells(self):
        self.assertTrue(is_shell_interpreter("/bin/sh"))
        self.assertTrue(is_shell_interpreter("BASH"))
        self.assertTrue(is_shell_interpreter("busybox"))
        self.assertFalse(is_shell_interpreter("ssh"))

    def test_script_interpreters(self):
        self.assertTrue(is_script_interpreter("python3.12"))
        self.assertTrue(is_script_interpreter("/usr/bin/ruby"))
        self.assertFalse(is_script_interpreter("pythonic"))


class TestDangerousPipe(TestCase):

    def test_pipe_to_shell(self):
        for command in ("curl x | sh", "curl x | bash", "cat s | /bin/sh", "cat s |zsh",
                        "cat s | sudo bash", "find . | xargs bash -c 'rm {}'",
                        "cat s | env bash", "cat s | source /dev/stdin"):
            self.assertTrue(has_pipe_to_shell(command), command)
            self.assertTrue(has_dangerous_pipe(command), command)

    def test_pipe_to_interpreter(self):
        for command in ("echo code | python", "curl x | python3", "cat s | perl",
                        "cat s | node", "cat s | /usr/bin/ruby", "cat s | env python3"):
            self.assertTrue(has_pipe_to_interpreter(command), command)
            self.assertTrue(has_dangerous_pipe(command), command)

    def test_safe_pipes(self):
        for command in ("cat file | grep pattern", "ls | wc -l", "ps aux | grep node",
                        "cat list | shuf", "git log | head -5"):
            self.assertFalse(has_dangerous_pipe(command), command)


class TestEnvHijacking(TestCase):

    def test_detected(self):
        for command in ("LD_PRELOAD=/tmp/evil.so ls", "export LD_LIBRARY_PATH=/tmp",
                        "DYLD_INSERT_LIBRARIES=x.dylib app", "PATH=/tmp:$PATH ls",
                        "PATH=./bin:$PATH make", "CMDGUARD_DISABLED=1 rm -rf /",
                        "export CMDGUARD_WARN_ONLY=1; rm -rf /"):
            self.assertTrue(has_env_hijacking(command), command)

    def test_not_detected(self):
        for command in ("ls -la", "echo $PATH", "PATH=/usr/local/bin:$PATH make",
                        "NODE_ENV=production npm start"):
            self.assertFalse(has_env_hijacking(command), command)


if __name__ == "__main__":
    unittest_main()
