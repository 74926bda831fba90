import os
from typing import NamedTuple

from dotenv import load_dotenv

# sentinels shared by every module
NONEXIST = -1
NULL = "-NULL-"
UNKNOWN_FEATURE = -1

ROOT_WORD = "ROOT"
ROOT_POS = "ROOT"
ROOT_LABEL = "O"
ARC_LABEL = "dep"  # arcs are unlabeled in practice

OUTSIDE = "O"
PUNCT_TAGS = frozenset({"''", ",", ".", ":", "``", "-LRB-", "-RRB-"})

IOBES = "IOBES"
IOB = "IOB"


class RunConfig(NamedTuple):
  """knobs for a training / evaluation run."""

  max_iter: int = 20
  eval_every: int = 1
  scheme: str = IOBES
  single_root: bool = True
  shuffle: bool = True
  seed: int = 1234

  data_path: str = "./data"
  train_file: str = "train.conll"
  dev_file: str = "dev.conll"
  test_file: str = "test.conll"
  output_dir: str = "results"


def _env_bool(name: str, default: bool) -> bool:
  raw = os.getenv(name)
  if raw is None:
    return default
  value = raw.strip().lower()
  if value in ("1", "true", "yes", "on"):
    return True
  if value in ("0", "false", "no", "off"):
    return False
  raise ValueError(f"invalid boolean for {name}: {raw!r}")


def _env_int(name: str, default: int) -> int:
  raw = os.getenv(name)
  if raw is None:
    return default
  try:
    return int(raw)
  except ValueError:
    raise ValueError(f"invalid integer for {name}: {raw!r}") from None


def create_config() -> RunConfig:
  """factory function reading overrides from the environment (and .env) with validation."""
  load_dotenv()
  defaults = RunConfig()

  config = RunConfig(
    max_iter=_env_int("MAX_ITER", defaults.max_iter),
    eval_every=_env_int("EVAL_EVERY", defaults.eval_every),
    scheme=IOBES if _env_bool("IOBES", True) else IOB,
    single_root=_env_bool("SINGLE_ROOT", defaults.single_root),
    shuffle=_env_bool("SHUFFLE", defaults.shuffle),
    seed=_env_int("SEED", defaults.seed),
    data_path=os.getenv("DATA_PATH", defaults.data_path),
    train_file=os.getenv("TRAIN_FILE", defaults.train_file),
    dev_file=os.getenv("DEV_FILE", defaults.dev_file),
    test_file=os.getenv("TEST_FILE", defaults.test_file),
    output_dir=os.getenv("OUTPUT_DIR", defaults.output_dir),
  )

  if config.max_iter < 1:
    raise ValueError(f"MAX_ITER must be positive, got {config.max_iter}")
  if config.eval_every < 1:
    raise ValueError(f"EVAL_EVERY must be positive, got {config.eval_every}")
  return config
