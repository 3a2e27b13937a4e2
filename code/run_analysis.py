#!/usr/bin/env python
"""
Run the full politeness / F0 analysis.

    python code/run_analysis.py --data data/f0_data.txt --outdir results

See `python code/run_analysis.py --help` for sampler options.
"""

from polite_f0.analysis import main


if __name__ == "__main__":
    main()
