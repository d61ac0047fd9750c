# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0
