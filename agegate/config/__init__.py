# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Configuration loading for AgeGate.

A single YAML file is deep-merged over built-in defaults, then CLI
overrides are applied. Relative paths are resolved against the config file
location.

Public API:

- load_effective_config: Load and merge configuration
- DEFAULT_CONFIG: Built-in defaults

Example:
    Basic usage:

        from pathlib import Path
        from agegate.config import load_effective_config

        config = load_effective_config(
            Path("agegate.yaml"), overrides={"jitter_seconds": 0}
        )
        print(config["primary"]["id"])

"""

from .loader import DEFAULT_CONFIG, load_effective_config

__all__ = ["DEFAULT_CONFIG", "load_effective_config"]
