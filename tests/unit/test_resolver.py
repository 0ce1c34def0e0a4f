"""
Unit tests for the file existence resolver.

Tests directory resolution, existence checks, placeholder rendering, fallback
text, echo behavior and markup sanitizing of FileExistenceResolver, plus the
plugin and theme variants.
"""

import io
import os
import tempfile
import shutil
from pathlib import Path
from unittest.mock import MagicMock, patch
import pytest

from iffileexists.models.config import SiteConfig
from iffileexists.models.file_query import Directory, FileQuery
from iffileexists.tools.placeholders import PLACEHOLDERS, format_size
from iffileexists.tools.resolver import FileExistenceResolver, create_resolver
from iffileexists.tools.site import DirectoryResolutionError


class TestFileExistenceResolver:
    """Test cases for FileExistenceResolver."""

    def setup_method(self):
        """Set up a site layout in a temporary directory."""
        self.temp_dir = tempfile.mkdtemp()
        self.root = Path(self.temp_dir).resolve()
        self._create_site()

        self.config = SiteConfig(
            root=str(self.root),
            site_url="https://example.com",
            theme={'stylesheet': 'child', 'template': 'parent'}
        )
        self.output = io.StringIO()
        self.resolver = FileExistenceResolver(self.config, output=self.output)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _create_site(self):
        """Create the directories and files of a small site."""
        self.includes = self.root / "wp-includes"
        self.uploads = self.root / "wp-content" / "uploads"
        self.plugins = self.root / "wp-content" / "plugins"
        self.themes = self.root / "wp-content" / "themes"

        for directory in [self.includes, self.uploads, self.plugins / "akismet",
                          self.themes / "child", self.themes / "parent" / "css"]:
            directory.mkdir(parents=True)

        self.version_file = self.includes / "version.php"
        self.version_file.write_text("<?php $wp_version = '6.5';\n")
        (self.uploads / "existing.txt").write_text("uploaded")
        (self.uploads / "big.bin").write_bytes(b"\0" * 1048576)
        (self.uploads / "x.txt").write_text("x")
        (self.plugins / "hello.php").write_text("<?php // Hello Dolly")
        (self.plugins / "akismet" / "akismet.php").write_text("<?php // Akismet")
        (self.themes / "child" / "style.css").write_text("/* child */")
        (self.themes / "parent" / "style.css").write_text("/* parent */")
        (self.themes / "parent" / "footer.php").write_text("<?php // footer")
        (self.themes / "parent" / "css" / "ie.css").write_text("/* ie */")

    # Existence checks without a format

    def test_detects_nonexistent_file_with_relative_path(self):
        """Test a missing file in the uploads directory."""
        assert self.resolver.check_file("nonexistent.txt") is False

    def test_detects_nonexistent_file_with_full_path(self):
        """Test a missing file given by full path."""
        assert self.resolver.check_file(str(self.root / "nonexistent.txt"), "", False, True) is False

    def test_detects_nonexistent_file_with_dir_arg(self):
        """Test a missing file in an explicit directory."""
        assert self.resolver.check_file("nonexistent.txt", "", False, str(self.root)) is False

    def test_detects_nonexistent_file_with_false_dir_arg(self):
        """Test a missing file with False as directory."""
        assert self.resolver.check_file("nonexistent.txt", "", False, False) is False

    def test_detects_existing_file_with_relative_path(self):
        """Test an existing file in the uploads directory."""
        assert self.resolver.check_file("existing.txt") is True

    def test_detects_existing_file_with_false_dir_arg(self):
        """Test an existing uploads file with False as directory."""
        assert self.resolver.check_file("existing.txt", "", False, False) is True

    def test_detects_existing_file_with_full_path(self):
        """Test an existing file given by full path."""
        assert self.resolver.check_file(str(self.version_file), "", False, True) is True

    def test_detects_existing_file_with_dir_arg(self):
        """Test an existing file in an absolute directory."""
        assert self.resolver.check_file("version.php", "", False, str(self.includes)) is True

    def test_detects_existing_file_with_relative_dir_arg(self):
        """Test an existing file in a directory relative to the root."""
        assert self.resolver.check_file("version.php", "", False, "wp-includes") is True

    def test_detects_existing_file_in_subdirectory_of_dir(self):
        """Test a filename that includes a sub-directory."""
        assert self.resolver.check_file("wp-includes/version.php", "", False, str(self.root)) is True

    def test_accepts_directory_variant(self):
        """Test passing a Directory instead of a legacy argument."""
        assert self.resolver.check_file("version.php", "", False, Directory.explicit("wp-includes")) is True
        assert self.resolver.check_file(str(self.version_file), "", False, Directory.full_path()) is True
        assert self.resolver.check_file("existing.txt", "", False, Directory.default()) is True

    def test_boolean_result_never_echoed(self):
        """Test that the boolean-only path writes nothing, even with echo on."""
        assert self.resolver.check_file("existing.txt", "", True) is True
        assert self.resolver.check_file("nonexistent.txt", "", True) is False
        assert self.output.getvalue() == ""

    def test_empty_filename(self):
        """Test that an empty filename is treated as a missing file."""
        assert self.resolver.check_file("") is False
        assert self.resolver.check_file("", "%file_name%", True, "", "missing") == "missing"

    def test_directory_counts_as_existing(self):
        """Test that the existence check also accepts directories."""
        assert self.resolver.check_file("wp-includes", "", False, str(self.root)) is True

    # Formatting

    def test_format_string_for_existing_file_with_full_path(self):
        """Test every placeholder for a file given by full path."""
        f = str(self.version_file)
        size = self.version_file.stat().st_size

        assert self.resolver.check_file(f, "%file_name%", False, True) == "version.php"
        assert self.resolver.check_file(f, "%file_directory%", False, True) == str(self.includes)
        assert self.resolver.check_file(f, "%file_extension%", False, True) == "php"
        assert self.resolver.check_file(f, "%file_path%", False, True) == f
        assert self.resolver.check_file(f, "%file_size%", False, True) == format_size(size)
        assert self.resolver.check_file(f, "%file_size_bytes%", False, True) == str(size)
        assert self.resolver.check_file(f, "%file_url%", False, True) == \
            "https://example.com/wp-includes/version.php"
        assert self.resolver.check_file(f, "file exists", False, True) == "file exists"

    def test_format_string_for_existing_file_with_dir_arg(self):
        """Test every placeholder for a file in a relative directory."""
        size = self.version_file.stat().st_size

        assert self.resolver.check_file("version.php", "%file_name%", False, "wp-includes") == "version.php"
        assert self.resolver.check_file("version.php", "%file_directory%", False, "wp-includes") == \
            str(self.includes)
        assert self.resolver.check_file("version.php", "%file_extension%", False, "wp-includes") == "php"
        assert self.resolver.check_file("version.php", "%file_path%", False, "wp-includes") == \
            str(self.version_file)
        assert self.resolver.check_file("version.php", "%file_size%", False, "wp-includes") == format_size(size)
        assert self.resolver.check_file("version.php", "%file_size_bytes%", False, "wp-includes") == str(size)
        assert self.resolver.check_file("version.php", "%file_url%", False, "wp-includes") == \
            "https://example.com/wp-includes/version.php"

    def test_format_string_for_uploads_file(self):
        """Test the URL of a file in the uploads directory."""
        result = self.resolver.check_file("existing.txt", "<a href='%file_url%'>Download %file_name% now!</a>", False)

        assert result == '<a href="https://example.com/wp-content/uploads/existing.txt">Download existing.txt now!</a>'

    def test_file_name_replaced_once_per_occurrence(self):
        """Test that %file_name% becomes exactly the basename."""
        result = self.resolver.check_file("x.txt", "[%file_name%]", False)
        assert result == "[x.txt]"

    def test_file_size_of_one_megabyte(self):
        """Test binary units and the stripped .00 for a 1 MB file."""
        assert self.resolver.check_file("big.bin", "%file_size%", False) == "1 MB"
        assert self.resolver.check_file("big.bin", "%file_size_bytes%", False) == "1048576"

    def test_full_path_marker_matches_split_arguments(self):
        """Test that a full path resolves the same file as filename plus directory."""
        fmt = "%file_path%|%file_directory%|%file_name%|%file_url%"

        split = self.resolver.check_file("version.php", fmt, False, "wp-includes")
        full = self.resolver.check_file(str(self.version_file), fmt, False, True)

        assert split == full
        assert self.resolver.resolve(FileQuery(filename="version.php", directory="wp-includes")) == \
            self.resolver.resolve(FileQuery(filename=str(self.version_file), directory=True))

    def test_format_string_for_nonexistent_file(self):
        """Test that a missing file renders nothing without a fallback."""
        for placeholder in PLACEHOLDERS + ["file exists"]:
            assert self.resolver.check_file("nonexistent.txt", placeholder) == ""
        assert self.output.getvalue() == ""

    # Fallback text

    def test_show_if_not_exists_for_nonexistent_file(self):
        """Test that the fallback is returned for a missing file."""
        msg = "file does not exist"
        assert self.resolver.check_file("nonexistent.php", "%file_name%", False, "wp-includes", msg) == msg

    def test_fallback_is_not_substituted(self):
        """Test that placeholders in the fallback text stay literal."""
        msg = "%file_name% is missing"
        assert self.resolver.check_file("nonexistent.php", "%file_name%", False, "wp-includes", msg) == msg

    def test_show_if_not_exists_for_existing_file(self):
        """Test that the fallback is ignored when the file exists."""
        result = self.resolver.check_file("version.php", "%file_name%", False, "wp-includes", "file does not exist")
        assert result == "version.php"

    def test_return_value_when_fallback_contains_safe_markup(self):
        """Test a fallback with allowed markup."""
        msg = "<strong>file does not exist</strong>"
        assert self.resolver.check_file("nonexistent.php", "%file_name%", False, "wp-includes", msg) == msg

    def test_return_value_when_fallback_contains_unsafe_markup(self):
        """Test that unsafe markup is removed from the fallback."""
        msg = '<strong>file does not exist <script>alert("boom");</script>!</strong>'
        expected = "<strong>file does not exist !</strong>"

        assert self.resolver.check_file("nonexistent.php", "%file_name%", False, "wp-includes", msg) == expected

    def test_echo_value_when_fallback_contains_unsafe_markup(self):
        """Test that echoed fallback text is sanitized."""
        msg = '<strong>file does not exist <script>alert("boom");</script>!</strong>'
        expected = "<strong>file does not exist !</strong>"

        self.resolver.check_file("nonexistent.php", "%file_name%", True, "wp-includes", msg)
        assert self.output.getvalue() == expected

    # Markup and echo

    def test_return_value_when_format_string_contains_safe_markup(self):
        """Test a format string with allowed markup."""
        result = self.resolver.check_file("version.php", "<strong>%file_name%</strong>", False, "wp-includes")
        assert result == "<strong>version.php</strong>"

    def test_return_value_when_format_string_contains_unsafe_markup(self):
        """Test that script elements never survive in the returned string."""
        result = self.resolver.check_file("x.txt", "<b>%file_name% <script>alert(1)</script></b>", False)

        assert "<script" not in result
        assert result == "<b>x.txt </b>"

    def test_echo_value_when_format_string_contains_safe_markup(self):
        """Test echoing a format string with allowed markup."""
        result = self.resolver.check_file("version.php", "<strong>%file_name%</strong>", True, "wp-includes")

        assert self.output.getvalue() == "<strong>version.php</strong>"
        assert result == self.output.getvalue()

    def test_echo_value_when_format_string_contains_unsafe_markup(self):
        """Test that script elements never survive in the echoed string."""
        self.resolver.check_file("x.txt", "<b>%file_name% <script>alert(1)</script></b>", True)

        assert "<script" not in self.output.getvalue()
        assert self.output.getvalue() == "<b>x.txt </b>"

    def test_format_string_ending_in_unterminated_tag(self):
        """Test that an unterminated trailing tag is removed from rendered text."""
        result = self.resolver.check_file("x.txt", "<b>%file_name%</b><img src=x onerror=alert(1)", True)

        assert result == "<b>x.txt</b>"
        assert self.output.getvalue() == "<b>x.txt</b>"
        assert "onerror" not in result

    def test_fallback_ending_in_unterminated_tag(self):
        """Test that an unterminated trailing tag is removed from the fallback."""
        msg = "missing <img src=x onerror=alert(1) "
        result = self.resolver.check_file("nonexistent.php", "%file_name%", False, "wp-includes", msg)

        assert result == "missing "
        assert "onerror" not in result

    def test_echo_for_nonexistent_file(self):
        """Test that nothing is echoed for a missing file without fallback."""
        for placeholder in PLACEHOLDERS:
            self.resolver.check_file("nonexistent.txt", placeholder, True)
        assert self.output.getvalue() == ""

    def test_echo_for_existing_file(self):
        """Test that each placeholder is echoed for an existing file."""
        size = self.version_file.stat().st_size
        expectations = {
            '%file_name%': "version.php",
            '%file_directory%': str(self.includes),
            '%file_extension%': "php",
            '%file_path%': str(self.version_file),
            '%file_size%': format_size(size),
            '%file_size_bytes%': str(size),
            '%file_url%': "https://example.com/wp-includes/version.php",
            'file exists': "file exists",
        }

        for placeholder, expected in expectations.items():
            output = io.StringIO()
            resolver = FileExistenceResolver(self.config, output=output)
            resolver.check_file("version.php", placeholder, True, "wp-includes")
            assert output.getvalue() == expected

    def test_echo_defaults_to_stdout(self, capsys):
        """Test that echoed text goes to standard output by default."""
        resolver = FileExistenceResolver(self.config)
        resolver.check_file("x.txt", "%file_name%")

        assert capsys.readouterr().out == "x.txt"

    def test_custom_sanitizer(self):
        """Test that the sanitizer is injectable."""
        sanitizer = MagicMock(side_effect=lambda text: text.upper())
        resolver = FileExistenceResolver(self.config, sanitizer=sanitizer, output=self.output)

        assert resolver.check_file("x.txt", "%file_name%", False) == "X.TXT"
        sanitizer.assert_called_once_with("x.txt")

    def test_sanitizer_not_used_for_boolean_result(self):
        """Test that the boolean path skips sanitizing."""
        sanitizer = MagicMock(side_effect=lambda text: text)
        resolver = FileExistenceResolver(self.config, sanitizer=sanitizer)

        assert resolver.check_file("x.txt") is True
        sanitizer.assert_not_called()

    # Failure modes

    def test_uploads_directory_error_means_missing(self):
        """Test that an unresolvable uploads directory degrades to not found."""
        uploads = MagicMock()
        uploads.resolve.side_effect = DirectoryResolutionError("storage misconfigured")
        resolver = FileExistenceResolver(self.config, uploads=uploads, output=self.output)

        with patch("iffileexists.tools.resolver.os.stat") as mock_stat:
            assert resolver.check_file("existing.txt") is False
            assert resolver.check_file("existing.txt", "%file_name%", True, "", "gone") == "gone"
            mock_stat.assert_not_called()

        assert self.output.getvalue() == "gone"

    def test_missing_uploads_directory(self):
        """Test a site without an uploads directory."""
        shutil.rmtree(self.uploads)
        assert self.resolver.check_file("existing.txt") is False

    def test_stat_failure_means_missing(self):
        """Test that a failing stat is treated as a missing file."""
        with patch("iffileexists.tools.resolver.os.stat", side_effect=PermissionError("denied")):
            assert self.resolver.check_file("version.php", "", False, "wp-includes") is False

    def test_single_stat_per_check(self):
        """Test that a check stats the file exactly once."""
        with patch("iffileexists.tools.resolver.os.stat", wraps=os.stat) as mock_stat:
            self.resolver.check_file("version.php", "%file_size_bytes% %file_size%", False, "wp-includes")
            assert mock_stat.call_count == 1

    def test_evaluate_reports_existence_with_result(self):
        """Test that evaluate returns the existence flag next to the rendered text."""
        found = self.resolver.file_query("version.php", "%file_name%", False, "wp-includes", "gone")
        missing = self.resolver.file_query("missing.php", "%file_name%", False, "wp-includes", "gone")

        assert self.resolver.evaluate(found) == (True, "version.php")
        assert self.resolver.evaluate(missing) == (False, "gone")
        assert self.resolver.evaluate(self.resolver.file_query("x.txt")) == (True, True)

    def test_evaluate_stats_once(self):
        """Test that the existence flag and text come from one stat."""
        query = self.resolver.file_query("version.php", "%file_size_bytes%", False, "wp-includes")

        with patch("iffileexists.tools.resolver.os.stat", wraps=os.stat) as mock_stat:
            exists, text = self.resolver.evaluate(query)

        assert exists is True
        assert text == str(self.version_file.stat().st_size)
        assert mock_stat.call_count == 1

    def test_format_without_placeholders_skips_values(self):
        """Test that plain format text is used without computing placeholder values."""
        with patch("iffileexists.tools.resolver.build_placeholder_values") as mock_values:
            result = self.resolver.check_file("version.php", "<b>file exists</b>", False, "wp-includes")

        assert result == "<b>file exists</b>"
        mock_values.assert_not_called()

    def test_plugin_and_theme_queries(self):
        """Test the queries built for plugin and theme lookups."""
        plugin = self.resolver.plugin_file_query("akismet.php", directory="akismet")
        theme = self.resolver.theme_file_query("footer.php")

        assert plugin.directory == Directory.explicit(str(self.plugins / "akismet"))
        assert theme.filename == str(self.themes / "parent" / "footer.php")
        assert theme.directory == Directory.full_path()

    def test_resolve_does_not_touch_file(self):
        """Test that resolving a query does not require the file."""
        resolved = self.resolver.resolve(FileQuery(filename="missing.txt", directory="docs"))

        assert resolved.full_path == str(self.root / "docs" / "missing.txt")
        assert resolved.size_bytes is None

    def test_resolve_unresolvable(self):
        """Test resolving queries that cannot produce a path."""
        assert self.resolver.resolve(FileQuery(filename="")) is None
        assert self.resolver.resolve(FileQuery(filename="/", directory=True)) is None

    # Plugin variant

    def test_if_plugin_file_exists_with_nonexistent_file(self):
        """Test a missing plugin file."""
        assert self.resolver.check_plugin_file("nonexistent.txt") is False

    def test_if_plugin_file_exists_with_existing_file(self):
        """Test a plugin file in the plugins root."""
        assert self.resolver.check_plugin_file("hello.php") is True
        assert self.resolver.check_plugin_file("hello.php", "%file_name%", False) == "hello.php"

    def test_plugin_file_in_sub_directory(self):
        """Test a plugin file in a plugin's own directory."""
        assert self.resolver.check_plugin_file("akismet.php", "", False, "akismet") is True
        assert self.resolver.check_plugin_file("akismet.php", "%file_url%", False, "akismet") == \
            "https://example.com/wp-content/plugins/akismet/akismet.php"

    def test_plugin_file_with_full_path_marker(self):
        """Test a filename that is already relative to the plugins root."""
        assert self.resolver.check_plugin_file("akismet/akismet.php", "", False, True) is True
        assert self.resolver.check_plugin_file("akismet/akismet.php", "%file_directory%", False, True) == \
            str(self.plugins / "akismet")

    def test_plugin_file_echo(self):
        """Test that the plugin variant echoes like the core."""
        self.resolver.check_plugin_file("hello.php", "<em>%file_name%</em>")
        assert self.output.getvalue() == "<em>hello.php</em>"

    # Theme variant

    def test_if_theme_file_exists_with_nonexistent_file(self):
        """Test missing theme files."""
        assert self.resolver.check_theme_file("nonexistent.txt") is False
        assert self.resolver.check_theme_file("nonexistent.css", "", False, "css") is False

    def test_if_theme_file_exists_with_existing_file(self):
        """Test a theme file in the active theme."""
        assert self.resolver.check_theme_file("style.css") is True
        assert self.resolver.check_theme_file("style.css", "%file_path%", False) == \
            str(self.themes / "child" / "style.css")

    def test_theme_file_only_in_parent_theme(self):
        """Test that files only in the parent theme resolve through the parent."""
        assert self.resolver.check_theme_file("footer.php") is True
        assert self.resolver.check_theme_file("footer.php", "%file_url%", False) == \
            "https://example.com/wp-content/themes/parent/footer.php"

    def test_theme_file_in_sub_directory(self):
        """Test a theme file in a sub-directory of the theme."""
        assert self.resolver.check_theme_file("ie.css", "", False, "css") is True
        assert self.resolver.check_theme_file("ie.css", "%file_path%", False, "css") == \
            str(self.themes / "parent" / "css" / "ie.css")

    def test_theme_file_fallback(self):
        """Test fallback text for a missing theme file."""
        assert self.resolver.check_theme_file("missing.css", "%file_name%", True, "css", "none") == "none"
        assert self.output.getvalue() == "none"

    def test_theme_lookup_is_injectable(self):
        """Test that the theme locator is consulted with the joined name."""
        locator = MagicMock()
        locator.locate.return_value = ""
        resolver = FileExistenceResolver(self.config, theme_locator=locator)

        assert resolver.check_theme_file("print.css", "", False, "css") is False
        locator.locate.assert_called_once_with("css/print.css")


class TestSymlinkedRoot:
    """Test cases for a site root reached through a symlink."""

    def setup_method(self):
        """Set up a release directory and a 'current' symlink pointing at it."""
        self.temp_dir = tempfile.mkdtemp()
        base = Path(self.temp_dir).resolve()

        self.release = base / "releases" / "r1"
        (self.release / "wp-content" / "uploads").mkdir(parents=True)
        (self.release / "wp-content" / "uploads" / "x.zip").write_bytes(b"PK")

        self.root = base / "current"
        self.root.symlink_to(self.release, target_is_directory=True)

        self.config = SiteConfig(root=str(self.root), site_url="https://example.com")
        self.resolver = FileExistenceResolver(self.config, output=io.StringIO())

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_root_keeps_symlink(self):
        """Test that the configured root is not resolved through the symlink."""
        assert self.config.root == str(self.root)

    def test_url_for_full_path_through_symlink(self):
        """Test the URL of a full path built from the configured root."""
        full_path = str(self.root / "wp-content" / "uploads" / "x.zip")

        assert self.resolver.check_file(full_path, "%file_url%", False, True) == \
            "https://example.com/wp-content/uploads/x.zip"

    def test_url_for_full_path_in_release_directory(self):
        """Test the URL of a full path given with the symlink resolved."""
        full_path = str(self.release / "wp-content" / "uploads" / "x.zip")

        assert self.resolver.check_file(full_path, "%file_url%", False, True) == \
            "https://example.com/wp-content/uploads/x.zip"

    def test_url_matches_uploads_lookup(self):
        """Test that full path and uploads lookups agree on the URL."""
        full_path = str(self.root / "wp-content" / "uploads" / "x.zip")

        assert self.resolver.check_file("x.zip", "%file_url%", False) == \
            self.resolver.check_file(full_path, "%file_url%", False, True)


class TestCreateResolver:
    """Test cases for create_resolver."""

    def test_default_config(self):
        """Test creating a resolver without configuration."""
        resolver = create_resolver()

        assert isinstance(resolver, FileExistenceResolver)
        assert resolver.config.root == str(Path.cwd())

    def test_passes_collaborators(self):
        """Test that keyword arguments reach the resolver."""
        output = io.StringIO()
        resolver = create_resolver(SiteConfig(root="/srv/site"), output=output)

        assert resolver.output is output
        assert resolver.config.root == "/srv/site"
