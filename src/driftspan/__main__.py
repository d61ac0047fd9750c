# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

import sys

from driftspan.cli import main

sys.exit(main())
