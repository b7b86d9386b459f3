#!/usr/bin/env python3
"""
Test runner for the webtoon reader backend.
Runs all tests and provides comprehensive reporting.
"""

import unittest
import sys
import os
from pathlib import Path
import time

# Add project root to path
project_root = Path(__file__).parent.parent.absolute()
sys.path.insert(0, str(project_root))

# Suites are loaded by name so this module does not re-export the test cases
UNIT_TESTS = [
    'tests.test_models',
    'tests.test_parsers',
    'tests.test_webtoon_client',
    'tests.test_database',
    'tests.test_downloader',
    'tests.test_cli',
]

INTEGRATION_TESTS = [
    'tests.test_episodes',
    'tests.test_controllers',
]

FUNCTIONALITY_TESTS = {
    "Page Parsing": ['tests.test_parsers.TestParseWebtoonMetadata', 'tests.test_parsers.TestParseEpisodeList',
                     'tests.test_parsers.TestParseEpisodeDetail', 'tests.test_parsers.TestParseListings',
                     'tests.test_parsers.TestParseEpisodePosts', 'tests.test_parsers.TestParseCreatorPage'],
    "Episode Scraping": ['tests.test_episodes.TestScrapeEpisodeList', 'tests.test_episodes.TestFetchDetail'],
    "Image Caching": ['tests.test_downloader.TestImageDownloader'],
    "Cache Freshness": ['tests.test_controllers.TestDecideRefresh', 'tests.test_controllers.TestWebtoonInfo',
                        'tests.test_controllers.TestEpisodeOperations', 'tests.test_controllers.TestSingleFlight'],
    "Database Operations": ['tests.test_database.TestDatabaseManager'],
    "User Library": ['tests.test_controllers.TestLibraryController'],
    "Discovery": ['tests.test_controllers.TestImagesAndDiscovery', 'tests.test_webtoon_client.TestUrlBuilders'],
    "Settings": ['tests.test_models.TestLanguage'],
}


def load_suite(names):
    return unittest.TestLoader().loadTestsFromNames(names)


def run_test_suite(test_type='all'):
    """Run the test suite and return results."""
    names = []
    if test_type in ('all', 'unit'):
        print("Adding unit tests...")
        names.extend(UNIT_TESTS)
    if test_type in ('all', 'integration'):
        print("Adding integration tests...")
        names.extend(INTEGRATION_TESTS)

    # Run tests
    runner = unittest.TextTestRunner(verbosity=2)
    start_time = time.time()
    result = runner.run(load_suite(names))
    end_time = time.time()

    # Print summary
    print("\n" + "=" * 60)
    print("TEST SUMMARY")
    print("=" * 60)
    print(f"Tests run: {result.testsRun}")
    print(f"Failures: {len(result.failures)}")
    print(f"Errors: {len(result.errors)}")
    if result.testsRun:
        passed = result.testsRun - len(result.failures) - len(result.errors)
        print(f"Success rate: {passed / result.testsRun * 100:.1f}%")
    print(f"Execution time: {end_time - start_time:.2f} seconds")

    if result.failures:
        print("\nFAILURES:")
        for test, traceback in result.failures:
            print(f"- {test}: {traceback}")

    if result.errors:
        print("\nERRORS:")
        for test, traceback in result.errors:
            print(f"- {test}: {traceback}")

    print("\n" + "=" * 60)

    return result.wasSuccessful()


def run_functionality_tests():
    """Run the tests grouped by backend feature."""

    print("RUNNING CORE FUNCTIONALITY TESTS")
    print("=" * 50)

    all_passed = True

    for functionality, names in FUNCTIONALITY_TESTS.items():
        print(f"\n{functionality.upper()}")
        print("-" * len(functionality))

        with open(os.devnull, 'w') as devnull:
            result = unittest.TextTestRunner(verbosity=1, stream=devnull).run(load_suite(names))

        if result.wasSuccessful():
            print(f"OK   {functionality}: all tests passed ({result.testsRun} tests)")
        else:
            print(f"FAIL {functionality}: {len(result.failures + result.errors)} failures/errors ({result.testsRun} tests)")
            all_passed = False

    print("\n" + "=" * 50)
    if all_passed:
        print("All functionality tests passed.")
    else:
        print("Some functionality tests failed. Check the details above.")

    return all_passed


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Run webtoon reader tests')
    parser.add_argument('--type', choices=['all', 'unit', 'integration', 'functionality'],
                        default='functionality',
                        help='Type of tests to run (default: functionality)')

    args = parser.parse_args()

    print("WEBTOON READER TEST SUITE")
    print(f"Running {args.type} tests...")
    print("=" * 50)

    if args.type == 'functionality':
        success = run_functionality_tests()
    else:
        success = run_test_suite(args.type)

    sys.exit(0 if success else 1)
