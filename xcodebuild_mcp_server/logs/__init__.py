"""xcodebuild log grammar, parser and formatting"""
