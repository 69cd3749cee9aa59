"""Console interface for the Vantis harness"""
