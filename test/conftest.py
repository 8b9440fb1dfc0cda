"""
Test configuration for the RPAL CSE machine tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from interpreter import create_machine
from parsing import create_tree_reader


@pytest.fixture
def machine():
  """Fresh machine for each test"""
  return create_machine()


@pytest.fixture
def reader():
  return create_tree_reader()


@pytest.fixture
def run(machine):
  """Evaluate a standardized tree dump and return the Print output"""
  def run_dump(text):
    return machine.run_standardized_tree(text.strip('\n'))
  return run_dump
