from pathlib import Path

import pytest

from bvh_player import BvhDocument


DATA_DIR = Path(__file__).parent.parent / "data"

TWO_JOINT_BVH = """HIERARCHY
ROOT Hips
{
  OFFSET 0 0 0
  CHANNELS 6 Xposition Yposition Zposition Zrotation Xrotation Yrotation
  JOINT Chest
  {
    OFFSET 0 5 0
    CHANNELS 3 Zrotation Xrotation Yrotation
    End Site
    {
      OFFSET 0 5 0
    }
  }
}
MOTION
Frames: 3
Frame Time: 0.1
1 2 3 0 0 0 0 0 0
0 0 0 90 0 0 0 0 0
0 0 0 0 0 0 0 0 90
"""

ARM_BVH = """HIERARCHY
ROOT Base
{
  OFFSET 0 0 0
  CHANNELS 3 Zrotation Xrotation Yrotation
  JOINT Arm
  {
    OFFSET 0 1 0
    CHANNELS 3 Zrotation Xrotation Yrotation
    End Site
    {
      OFFSET 0 1 0
    }
  }
}
MOTION
Frames: 1
Frame Time: 0.1
0 0 0 0 0 0
"""

STICK_BVH = """HIERARCHY
ROOT Base
{
  OFFSET 0 0 0
  CHANNELS 3 Zrotation Xrotation Yrotation
  End Site
  {
    OFFSET 0 1 0
  }
}
MOTION
Frames: 2
Frame Time: 0.1
0 0 0
0 0 0
"""


@pytest.fixture
def sample_path():
    return DATA_DIR / "sample.bvh"


@pytest.fixture
def sample_text(sample_path):
    return sample_path.read_text(encoding="utf-8")


@pytest.fixture
def doc():
    document = BvhDocument()
    document.loads(TWO_JOINT_BVH)
    return document


@pytest.fixture
def sample_doc(sample_path):
    document = BvhDocument()
    document.load(str(sample_path))
    return document
