#!/usr/bin/env python3
import unittest
import sys
import os

def run_tests():
    """Run all test cases"""
    # Add project root and src/ to path
    root = os.path.abspath(os.path.dirname(__file__))
    sys.path.insert(0, root)
    sys.path.insert(0, os.path.join(root, 'src'))

    # Discover and run tests
    loader = unittest.TestLoader()
    start_dir = os.path.join(root, 'tests')
    suite = loader.discover(start_dir, pattern='test_*.py')

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()

if __name__ == '__main__':
    success = run_tests()
    sys.exit(0 if success else 1)
