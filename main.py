from pathlib import Path
import argparse
import torch
from tabnn import NeuralNetwork, load_config_from_yaml
from tabnn.commons.console import console

torch.set_float32_matmul_precision("medium")


def main() -> None:
    parser = argparse.ArgumentParser(description="Train a tabular neural network from a YAML config.")
    parser.add_argument("config", type=Path, help="YAML file with NeuralNetworkConfig options (incl. data_url)")
    parser.add_argument("--save-metadata", type=Path, default=None, help="Directory for dataset_meta.json")
    args = parser.parse_args()

    config = load_config_from_yaml(args.config)
    network = NeuralNetwork(config)

    if network.raw is None:
        parser.error("The config must set data_url")

    network.summary()
    history = network.train()

    if history.final_loss is not None:
        console.print(f"Final loss: {history.final_loss:.4f}", style="info_text")

    if args.save_metadata is not None:
        path = network.save_metadata(args.save_metadata)
        console.print(f"Saved metadata to {path}", style="info_text")


if __name__ == "__main__":
    main()
