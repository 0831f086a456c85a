"""
Command-line runner for AMF.

Loads a whitespace-delimited QoS matrix (users × services, 0 or negative
values = missing), keeps a random fraction of entries for training, fits
AMF and reports accuracy on the removed entries (or on the training entries
when --density is 1.0).

Usage:
    python -m amf.cli rtMatrix.txt --density 0.1 --dim 10 --max-iter 300
"""

import argparse
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from .data import QoSData, QoSNormalizer, remove_entries
from .evaluation import evaluate
from .optimization import AMFTrainer


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Adaptive Matrix Factorization for QoS prediction")
    p.add_argument("matrix", type=Path, help="Whitespace-delimited QoS matrix (users × services)")
    p.add_argument("--density", type=float, default=0.1,
                   help="Fraction of entries kept for training, in (0, 1]; 1.0 trains and evaluates on all entries")
    p.add_argument("--dim", type=int, default=10, help="Latent dimension")
    p.add_argument("--lambda-reg", type=float, default=0.001, help="L2 regularization strength")
    p.add_argument("--max-iter", type=int, default=300, help="Number of SGD epochs")
    p.add_argument("--eta", type=float, default=0.8, help="Learning rate")
    p.add_argument("--beta", type=float, default=0.3, help="Confidence moving-average rate")
    p.add_argument("--seed", type=int, default=None, help="Random seed")
    p.add_argument("--normalize", action="store_true",
                   help="Divide QoS values by the max observed value before training")
    p.add_argument("--debug", action="store_true", help="Print loss checkpoints during training")
    p.add_argument("--output", type=Path, default=None, help="Where to write the prediction matrix")
    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if not 0 < args.density <= 1:
        parser.error(f"--density must be in (0, 1], got {args.density}")

    matrix = np.loadtxt(args.matrix)
    # Negative values mark failed invocations in QoS datasets
    matrix[matrix < 0] = 0
    data = QoSData(matrix)
    print(data.summary())

    held_out = args.density < 1.0
    if held_out:
        train_matrix, test_mask = remove_entries(matrix, args.density, random_state=args.seed)
    else:
        # Nothing is held out; accuracy is reported on the training entries
        train_matrix, test_mask = matrix, data.observed_mask

    normalizer = None
    if args.normalize:
        normalizer = QoSNormalizer()
        train_matrix = normalizer.fit_transform(train_matrix)

    trainer = AMFTrainer(
        latent_dim=args.dim,
        lambda_reg=args.lambda_reg,
        max_iter=args.max_iter,
        eta=args.eta,
        beta=args.beta,
        verbose=args.debug,
        random_seed=args.seed
    )
    trainer.fit(train_matrix)

    pred = trainer.predict()
    if normalizer is not None:
        pred = normalizer.inverse_transform(pred)

    if held_out:
        print("\n=== Accuracy on held-out entries ===")
    else:
        print("\n=== Accuracy on training entries ===")
    if np.any(test_mask):
        metrics = evaluate(matrix, pred, test_mask)
        print(pd.DataFrame([metrics]).to_string(index=False, float_format="%.4f"))
    else:
        print("No entries to evaluate.")

    if args.output is not None:
        np.savetxt(args.output, pred, fmt="%.6f")
        print(f"\nPredictions written to {args.output}")


if __name__ == "__main__":
    main()
