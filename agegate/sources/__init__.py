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

"""Package sources for AgeGate.

Public API:

- PackageSource: Protocol every source implements
- get_source: Instantiate a registered source by name
- register_source: Add a source to the registry
- available_sources: Names of registered sources

Importing this package registers the built-in ``winget`` source.
"""

from .base import PackageSource, available_sources, get_source, register_source
from . import winget  # noqa: F401  (registers "winget")

__all__ = ["PackageSource", "available_sources", "get_source", "register_source"]
