VERSION = "0.4.0"

LOGO = r"""
                    _       _
  ___  ___  ___  __| |_ __ (_)_ __   ___
 / __|/ _ \/ _ \/ _` | '_ \| | '_ \ / _ \
 \__ \  __/  __/ (_| | |_) | | |_) |  __/
 |___/\___|\___|\__,_| .__/|_| .__/ \___|
                     |_|     |_|
"""
