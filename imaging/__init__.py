from imaging.downloader import ImageFetcher
