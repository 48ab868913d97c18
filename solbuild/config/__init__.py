from .solbuild_config import SolbuildConfig, UnsupportedPlatformError

__doc__ = """This module handles config file management. Each config option has its default value.
There are two main sources of config files:
* `config.toml` global config file in the solbuild config directory ($XDG_CONFIG_HOME/solbuild, $HOME/.config/solbuild on macOS and Linux)
* `solbuild.toml` project-specific config file present in a project root directory

There may be additional config files included with the `subconfigs` top-level config key. Options loaded later
override earlier ones, so project-specific options override the global `config.toml`.

Extra config keys that are not specified in the data model are forbidden."""
