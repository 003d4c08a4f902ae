"""SecurePass Meta information.
   SecurePass keeps passwords, backup codes and AI API keys encrypted at rest.
"""
__title__ = 'securepass'
__description__ = (
   'SecurePass keeps passwords, backup codes and AI API keys '
   'encrypted at rest in a local vault.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2025 SecurePass Authors'
__author__ = 'SecurePass Authors'
__author_email__ = 'securepass@example.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/securepass/securepass'
