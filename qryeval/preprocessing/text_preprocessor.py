import string
from pathlib import Path
from typing import List, Set
import nltk
from nltk.stem import PorterStemmer
from nltk.tokenize import RegexpTokenizer


class TextPreprocessor:
    """
    Normalizes query terms so they match the terms stored in the index.
    """

    def __init__(self, config):
        """
        Initialize preprocessor with configuration.

        Args:
            config: Hydra config object with preprocessing settings
        """
        self.config = config
        self.tokenizer = RegexpTokenizer(config.preprocessing.get('token_pattern', r"\w+"))
        self.stemmer = PorterStemmer() if config.preprocessing.stemming else None

        if config.preprocessing.remove_stopwords:
            self.stopwords = self._load_stopwords()
        else:
            self.stopwords = set()

    def _load_stopwords(self) -> Set[str]:
        """Load stopwords from the configured file, or NLTK's English list."""
        stopwords_file = self.config.preprocessing.get('stopwords_file')
        if stopwords_file:
            with open(Path(stopwords_file), 'r', encoding='utf-8') as f:
                return {line.strip().lower() for line in f if line.strip()}

        try:
            nltk.data.find('corpora/stopwords')
        except LookupError:
            nltk.download('stopwords', quiet=True)

        from nltk.corpus import stopwords
        return set(stopwords.words('english'))

    def preprocess(self, text: str) -> List[str]:
        """
        Preprocess text according to configuration.

        Args:
            text: Input text string (usually a single query term)

        Returns:
            List of processed tokens
        """
        if not text:
            return []

        # Lowercase
        if self.config.preprocessing.lowercase:
            text = text.lower()

        # Remove punctuation
        if self.config.preprocessing.remove_punctuation:
            text = text.translate(str.maketrans('', '', string.punctuation))

        # Tokenize
        tokens = self.tokenizer.tokenize(text)

        # Filter by length
        tokens = [
            token for token in tokens
            if self.config.preprocessing.min_word_length <= len(token) <= self.config.preprocessing.max_word_length
        ]

        # Remove stopwords
        if self.stopwords:
            tokens = [token for token in tokens if token not in self.stopwords]

        # Stemming
        if self.stemmer:
            tokens = [self.stemmer.stem(token) for token in tokens]

        return tokens
